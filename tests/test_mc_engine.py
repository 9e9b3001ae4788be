# -*- coding: utf-8 -*-
"""
MC 引擎单元测试

覆盖范围：
- sweep：能量增量维护、提议计数、全部接受
- 全局更新：提议次数 floor(K/R)、滚动/累积接受率
- 生命周期：CREATED -> INITIALIZED -> RUNNING -> COMPLETED / PARTIAL / FAILED
- 错误：未初始化、重入、非有限 ΔE、构型类型不符
- 计时：假时钟驱动的区间报告
- 可复现性：相同种子得到相同构型与测量序列
"""

import math
import sys
import unittest
from pathlib import Path

import numpy as np

try:
    _ROOT = Path(__file__).resolve().parents[1]
except NameError:
    _ROOT = Path.cwd()

for _p in (_ROOT / "src", _ROOT / "tests"):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from classical_mc.core.errors import (
    AlreadyFinalizedError,
    ConfigurationTypeMismatch,
    NumericalError,
    SimulationStateError,
    UninitializedStateError,
)
from classical_mc.models.ising import IsingModel
from classical_mc.simulation.mc import MC, MCParameters, RunStatus

from toy_models import (
    ChainIsing,
    DownhillModel,
    FailingMeasureModel,
    FakeClock,
    NaNModel,
    WrongTypeModel,
)


class TestSweep(unittest.TestCase):
    """sweep 机制与计数"""

    def test_energy_tracks_recomputation(self):
        """每个 sweep 之后跟踪能量与重新计算值一致"""
        model = IsingModel(dims=2, L=4, beta=0.3, J=1.0, h=0.2)
        mc = MC(model).init(seed=11)
        for _ in range(50):
            mc.sweep()
            exact = model.energy(mc.conf)
            self.assertTrue(math.isclose(mc.energy, exact, rel_tol=1e-9, abs_tol=1e-9))
        mc.check_energy()
        self.assertAlmostEqual(mc.energy_drift(), 0.0, places=9)

    def test_all_moves_accepted_when_downhill(self):
        mc = MC(DownhillModel(n=5), MCParameters(sweeps=7)).init(seed=1)
        mc.run(verbose=False)
        self.assertEqual(mc.a.prop_local, 35)
        self.assertEqual(mc.a.acc_local, 35)
        self.assertEqual(mc.a.acc_rate, 1.0)
        self.assertEqual(mc.energy, -35.0)

    def test_prop_local_independent_of_acceptance(self):
        model = IsingModel(dims=2, L=4, beta=0.5)
        mc = MC(model).init(seed=3)
        mc.run(verbose=False, sweeps=13, thermalization=4)
        self.assertEqual(mc.a.prop_local, 17 * 16)
        self.assertLessEqual(mc.a.acc_local, mc.a.prop_local)

    def test_energy_check_interval_passes_for_consistent_model(self):
        model = IsingModel(dims=3, L=3, beta=0.2, h=-0.3)
        mc = MC(model, MCParameters(sweeps=20, energy_check_interval=1)).init(seed=5)
        mc.run(verbose=False)
        self.assertIs(mc.status, RunStatus.COMPLETED)


class TestGlobalMoves(unittest.TestCase):

    def test_prop_global_is_floor_of_total_over_rate(self):
        for total, rate in [(20, 3), (10, 5), (7, 10), (12, 1)]:
            with self.subTest(total=total, rate=rate):
                model = ChainIsing(n=4, beta=0.5)
                p = MCParameters(global_moves=True, global_rate=rate, sweeps=total)
                mc = MC(model, p).init(seed=2)
                mc.run(verbose=False)
                self.assertEqual(mc.a.prop_global, total // rate)
                self.assertEqual(mc.a.acc_global, total // rate)
                self.assertEqual(model.global_calls, total // rate)

    def test_no_global_moves_when_disabled(self):
        model = ChainIsing(n=4)
        mc = MC(model, MCParameters(sweeps=30, global_rate=1)).init(seed=2)
        mc.run(verbose=False)
        self.assertEqual(model.global_calls, 0)
        self.assertEqual(mc.a.prop_global, 0)
        self.assertTrue(math.isnan(mc.a.acc_rate_global))

    def test_rolling_global_rate_per_window(self):
        """报告区间内无全局提议时滚动全局接受率为 NaN"""
        p = MCParameters(global_moves=True, global_rate=4, sweeps=8, report_interval=2)
        mc = MC(ChainIsing(n=3), p, clock=FakeClock()).init(seed=4)
        mc.run(verbose=False)
        reports = mc.reports
        self.assertEqual([r.sweep for r in reports], [2, 4, 6, 8])
        self.assertTrue(math.isnan(reports[0].acc_rate_global))
        self.assertEqual(reports[1].acc_rate_global, 1.0)
        self.assertTrue(math.isnan(reports[2].acc_rate_global))
        self.assertEqual(reports[3].acc_rate_global_overall, 1.0)
        self.assertEqual(mc.a.acc_rate_global, 1.0)

    def test_energy_reconciled_after_global_move(self):
        model = IsingModel(dims=2, L=6, beta=0.44)
        p = MCParameters(global_moves=True, global_rate=1, sweeps=30, energy_check_interval=1)
        mc = MC(model, p).init(seed=9)
        mc.run(verbose=False)
        self.assertAlmostEqual(mc.energy, model.energy(mc.conf), places=9)


class TestLifecycle(unittest.TestCase):

    def test_created_state_has_no_configuration(self):
        mc = MC(DownhillModel())
        self.assertIs(mc.status, RunStatus.CREATED)
        with self.assertRaises(UninitializedStateError):
            _ = mc.conf
        with self.assertRaises(UninitializedStateError):
            mc.run(verbose=False)

    def test_run_after_completion_requires_init(self):
        mc = MC(DownhillModel(), MCParameters(sweeps=2)).init(seed=1)
        mc.run(verbose=False)
        self.assertIs(mc.status, RunStatus.COMPLETED)
        with self.assertRaises(UninitializedStateError):
            mc.run(verbose=False)
        mc.init()
        mc.run(verbose=False)
        self.assertIs(mc.status, RunStatus.COMPLETED)

    def test_reinit_resets_statistics_and_registry(self):
        mc = MC(ChainIsing(n=4), MCParameters(sweeps=25, global_moves=True, global_rate=2)).init(seed=6)
        old_obs = mc.run(verbose=False)
        self.assertGreater(mc.a.prop_local, 0)

        mc.init(seed=6)
        self.assertIs(mc.status, RunStatus.INITIALIZED)
        for name, value in mc.a.to_dict().items():
            self.assertEqual(value, 0, msg=name)
        self.assertIsNot(mc.obs, old_obs)
        self.assertFalse(mc.obs.finalized)
        self.assertTrue(all(len(o) == 0 for o in mc.obs.values()))
        self.assertEqual(mc.reports, [])
        self.assertEqual(mc.energy, mc.model.energy(mc.conf))

    def test_finalize_twice_raises_and_keeps_values(self):
        mc = MC(ChainIsing(n=2), MCParameters(sweeps=10)).init(seed=1)
        obs = mc.run(verbose=False)
        before = obs["E"].values.copy()
        with self.assertRaises(AlreadyFinalizedError):
            obs.finalize()
        with self.assertRaises(AlreadyFinalizedError):
            obs["E"].add(0.0)
        np.testing.assert_array_equal(obs["E"].values, before)

    def test_overrides_are_written_back(self):
        mc = MC(DownhillModel(), MCParameters(sweeps=100)).init(seed=1)
        obs = mc.run(verbose=False, sweeps=6, thermalization=3)
        self.assertEqual(mc.p.sweeps, 6)
        self.assertEqual(mc.p.thermalization, 3)
        self.assertEqual(len(obs["E"]), 6)
        self.assertEqual(mc.summary()["sweeps_done"], 9)

    def test_should_stop_gives_partial(self):
        mc = MC(DownhillModel(n=2), MCParameters(sweeps=50, thermalization=5)).init(seed=1)
        obs = mc.run(verbose=False, should_stop=lambda i: i == 12)
        self.assertIs(mc.status, RunStatus.PARTIAL)
        self.assertTrue(obs.finalized)
        self.assertEqual(len(obs["E"]), 7)
        self.assertEqual(mc.a.prop_local, 24)

    def test_run_is_not_reentrant(self):
        mc = MC(DownhillModel(), MCParameters(sweeps=5)).init(seed=1)

        def reenter(i):
            mc.run(verbose=False)
            return False

        with self.assertRaises(SimulationStateError):
            mc.run(verbose=False, should_stop=reenter)
        self.assertIs(mc.status, RunStatus.FAILED)

    def test_init_while_running_is_rejected(self):
        mc = MC(DownhillModel(), MCParameters(sweeps=5)).init(seed=1)

        def reinit(i):
            mc.init()
            return False

        with self.assertRaises(SimulationStateError):
            mc.run(verbose=False, should_stop=reinit)

    def test_model_exception_aborts_run(self):
        model = FailingMeasureModel(n=3, fail_at=2)
        mc = MC(model, MCParameters(sweeps=10)).init(seed=1)
        with self.assertRaises(RuntimeError):
            mc.run(verbose=False)
        self.assertIs(mc.status, RunStatus.FAILED)
        self.assertEqual(model.measured, 2)
        with self.assertRaises(UninitializedStateError):
            mc.run(verbose=False)

    def test_failure_log_names_failing_sweep(self):
        mc = MC(FailingMeasureModel(n=3, fail_at=2), MCParameters(sweeps=10)).init(seed=1)
        with self.assertLogs("classical_mc.simulation.mc", level="ERROR") as cm:
            with self.assertRaises(RuntimeError):
                mc.run(verbose=False)
        self.assertIn("run aborted at sweep 2", "\n".join(cm.output))

    def test_sweep_after_run_is_rejected(self):
        """运行结束后 sweep() 不得再修改构型或统计量"""
        for stop in (None, lambda i: i == 2):
            with self.subTest(partial=stop is not None):
                mc = MC(DownhillModel(n=5), MCParameters(sweeps=3)).init(seed=1)
                mc.run(verbose=False, should_stop=stop)
                conf = list(mc.conf)
                before = (mc.a.prop_local, mc.a.acc_rate, mc.energy)
                with self.assertRaises(UninitializedStateError):
                    mc.sweep()
                self.assertEqual((mc.a.prop_local, mc.a.acc_rate, mc.energy), before)
                self.assertEqual(mc.conf, conf)
                self.assertLessEqual(mc.a.acc_rate, 1.0)

    def test_sweep_after_failure_is_rejected(self):
        mc = MC(FailingMeasureModel(n=3, fail_at=1), MCParameters(sweeps=4)).init(seed=1)
        with self.assertRaises(RuntimeError):
            mc.run(verbose=False)
        with self.assertRaises(UninitializedStateError):
            mc.sweep()
        mc.init(seed=1)
        mc.sweep()
        self.assertEqual(mc.a.prop_local, 3)

    def test_unseeded_init_clears_seed(self):
        mc = MC(ChainIsing(n=4)).init(seed=6)
        self.assertEqual(mc.summary()["seed"], 6)
        mc.init()
        self.assertIsNone(mc.seed)
        self.assertIsNone(mc.summary()["seed"])

    def test_model_must_implement_interface(self):
        with self.assertRaises(TypeError):
            MC(object())


class TestErrors(unittest.TestCase):

    def test_non_finite_delta_raises_with_context(self):
        mc = MC(NaNModel(n=4, bad_sweep=2, bad_site=1), MCParameters(sweeps=5)).init(seed=1)
        with self.assertRaises(NumericalError) as cm:
            mc.run(verbose=False)
        self.assertEqual(cm.exception.sweep, 2)
        self.assertEqual(cm.exception.site, 1)
        self.assertIn("sweep=2", str(cm.exception))
        # 出错格点的提议不计入
        self.assertEqual(mc.a.prop_local, 5)
        self.assertIs(mc.status, RunStatus.FAILED)

    def test_configuration_type_mismatch(self):
        mc = MC(WrongTypeModel())
        with self.assertRaises(ConfigurationTypeMismatch) as cm:
            mc.init(seed=1)
        self.assertIs(cm.exception.expected, list)
        self.assertIs(cm.exception.got, tuple)
        self.assertIsInstance(cm.exception, TypeError)
        self.assertIs(mc.status, RunStatus.CREATED)

    def test_energy_drift_detected(self):
        mc = MC(DownhillModel(n=3)).init(seed=1)
        mc.sweep()
        mc._state.energy += 1.0
        with self.assertRaises(NumericalError):
            mc.check_energy()

    def test_parameter_validation(self):
        for kwargs in [{"global_rate": 0}, {"sweeps": -1}, {"report_interval": 0},
                       {"thermalization": 1.5}, {"sweeps": True}]:
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    MCParameters(**kwargs)


class TestScenarios(unittest.TestCase):

    def test_two_site_zero_temperature(self):
        """β = ∞：只接受 ΔE <= 0 的提议，终态为单翻转局域极小"""
        model = ChainIsing(n=2, beta=float("inf"), J=1.0)
        mc = MC(model, MCParameters(sweeps=100, thermalization=0, global_moves=False)).init(seed=8)
        mc.run(verbose=False)

        self.assertEqual(mc.a.prop_local, 200)
        self.assertEqual(mc.a.acc_rate, model.n_downhill / model.n_proposed)
        self.assertEqual(mc.energy, -1.0)
        conf = mc.conf
        for i in range(2):
            dE, _ = model.propose_local(i, conf, mc.energy, mc.rng)
            self.assertGreater(dE, 0.0)

    def test_zero_sweeps(self):
        model = IsingModel(dims=2, L=4, beta=0.4)
        mc = MC(model, MCParameters(sweeps=0, thermalization=0, global_moves=True)).init(seed=1)
        obs = mc.run(verbose=False)
        self.assertIs(mc.status, RunStatus.COMPLETED)
        self.assertTrue(obs.finalized)
        for name, o in obs.items():
            self.assertEqual(len(o), 0, msg=name)
            self.assertTrue(math.isnan(o.mean()))
        self.assertTrue(math.isnan(mc.a.acc_rate))
        self.assertTrue(math.isnan(mc.a.acc_rate_global))
        self.assertTrue(math.isnan(mc.a.sweep_dur))
        self.assertEqual(mc.a.prop_local, 0)


class TestTimingAndReports(unittest.TestCase):

    def test_fake_clock_durations(self):
        clock = FakeClock(step=2.0)
        p = MCParameters(sweeps=10, thermalization=2, report_interval=4)
        mc = MC(DownhillModel(n=2), p, clock=clock).init(seed=1)
        mc.run(verbose=False)
        reports = mc.reports
        self.assertEqual([r.sweep for r in reports], [4, 8, 12])
        for r in reports:
            self.assertAlmostEqual(r.sweep_dur, 0.5)
            self.assertEqual(r.acc_rate, 1.0)
        self.assertEqual(len(mc.sweep_durations), 3)
        self.assertAlmostEqual(mc.a.sweep_dur, 0.5)

    def test_no_report_when_interval_exceeds_run(self):
        mc = MC(DownhillModel(n=2), MCParameters(sweeps=5, report_interval=100), clock=FakeClock()).init(seed=1)
        mc.run(verbose=False)
        self.assertEqual(mc.reports, [])
        self.assertTrue(math.isnan(mc.a.sweep_dur))
        self.assertEqual(mc.a.acc_rate, 1.0)

    def test_verbose_progress_logging(self):
        p = MCParameters(sweeps=4, report_interval=2, global_moves=True, global_rate=2)
        mc = MC(ChainIsing(n=2), p, clock=FakeClock()).init(seed=1)
        with self.assertLogs("classical_mc.simulation.mc", level="INFO") as cm:
            mc.run(verbose=True)
        text = "\n".join(cm.output)
        self.assertIn("Started: 1.Jan 2024 12:00", text)
        self.assertIn("sweep dur: 0.500s", text)
        self.assertIn("acc rate (local) :", text)
        self.assertIn("acc rate (global): 100.0%", text)
        self.assertIn("Duration:", text)


class TestReproducibility(unittest.TestCase):

    def test_same_seed_same_chain(self):
        def run_once():
            mc = MC(IsingModel(dims=2, L=6, beta=0.44), MCParameters(sweeps=40, global_moves=True, global_rate=3))
            mc.init(seed=12345)
            first = mc.conf.copy()
            obs = mc.run(verbose=False)
            return first, obs["E"].values, mc.conf.copy()

        a0, aE, a1 = run_once()
        b0, bE, b1 = run_once()
        np.testing.assert_array_equal(a0, b0)
        np.testing.assert_array_equal(aE, bE)
        np.testing.assert_array_equal(a1, b1)

    def test_different_seeds_differ(self):
        m = IsingModel(dims=2, L=8, beta=0.3)
        c1 = MC(m).init(seed=1).conf
        c2 = MC(m).init(seed=2).conf
        self.assertFalse(np.array_equal(c1, c2))


if __name__ == "__main__":
    unittest.main()
