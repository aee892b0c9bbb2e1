from __future__ import annotations

import io
import itertools
import unittest

from kotoba.errors import ArityError, EvalError, HostAbort, UndefinedVariable
from kotoba.host import ExecutionLimits, Host, make_globals
from kotoba.main import run_source
from kotoba.values import format_number, render


class PrintTests(unittest.TestCase):
    def test_print_renders_each_kind(self) -> None:
        result = run_source('print(3), print(2.5), print(true), print(false), print(nil), print("hi"), print(-0.5)')
        self.assertEqual(result.output, '32.5truefalsenilhi-0.5')

    def test_print_returns_nil(self) -> None:
        result = run_source('print(1)')
        self.assertIsNone(result.value)
        self.assertEqual(result.output, '1')

    def test_print_takes_exactly_one_argument(self) -> None:
        with self.assertRaises(ArityError):
            run_source('print(1, 2)')
        with self.assertRaises(ArityError):
            run_source('print()')

    def test_print_renders_special_numbers_and_functions(self) -> None:
        result = run_source('print(1 / 0), print(" "), print(0 / 0), print(" "), fn f():; print(f)')
        self.assertEqual(result.output, 'inf NaN <fn f>')

    def test_print_can_be_shadowed(self) -> None:
        result = run_source('fn print(x): ret x; print(5)')
        self.assertEqual(result.value, 5.0)
        self.assertEqual(result.output, '')

    def test_output_stream_is_used_when_given(self) -> None:
        stream = io.StringIO()
        result = run_source('print("a\\nb")', output=stream)
        self.assertEqual(stream.getvalue(), 'a\nb')
        self.assertEqual(result.output, '')

    def test_print_never_uses_exponent_notation(self) -> None:
        result = run_source('print(10000000000000000 * 10), print(" "), print(0.0000001)')
        self.assertEqual(result.output, '100000000000000000 0.0000001')

    def test_render_and_number_format(self) -> None:
        self.assertEqual(render(100.0), '100')
        self.assertEqual(render(-0.0), '0')
        self.assertEqual(render(0.1), '0.1')
        self.assertEqual(format_number(1e20), '100000000000000000000')
        self.assertEqual(format_number(1e-07), '0.0000001')
        self.assertEqual(format_number(-1.5e-10), '-0.00000000015')
        self.assertEqual(format_number(float('-inf')), '-inf')


class BudgetTests(unittest.TestCase):
    def test_step_budget_aborts_infinite_loop(self) -> None:
        with self.assertRaises(HostAbort) as ctx:
            run_source('while true: 1;', limits=ExecutionLimits(max_steps=50))
        self.assertEqual(ctx.exception.code, 'HOST001')
        self.assertIsInstance(ctx.exception, EvalError)

    def test_time_limit_aborts(self) -> None:
        ticks = itertools.count()
        host = Host(output=io.StringIO(), limits=ExecutionLimits(time_limit=10), clock=lambda: float(next(ticks)))
        with self.assertRaises(HostAbort) as ctx:
            run_source('while true: 1;', host=host)
        self.assertEqual(ctx.exception.code, 'HOST002')

    def test_steps_count_statements(self) -> None:
        host = Host(output=io.StringIO())
        run_source('x = 1, if x == 1: y = 2, z = 3;', host=host)
        self.assertEqual(host.steps, 4)

    def test_budget_resets_per_run(self) -> None:
        host = Host(output=io.StringIO(), limits=ExecutionLimits(max_steps=3))
        run_source('1, 2, 3', host=host)
        run_source('1, 2, 3', host=host)
        self.assertEqual(host.steps, 3)


class GlobalsTests(unittest.TestCase):
    def test_runs_do_not_share_frames(self) -> None:
        run_source('x = 1')
        with self.assertRaises(UndefinedVariable):
            run_source('x')

    def test_host_supplied_globals(self) -> None:
        host = Host(output=io.StringIO())
        env = make_globals(host)
        env.declare('answer', 42.0)
        result = run_source('print(answer), answer + 1', host=host, globals_env=env)
        self.assertEqual(result.value, 43.0)
        self.assertEqual(host.output.getvalue(), '42')

    def test_program_bindings_stay_out_of_globals(self) -> None:
        host = Host(output=io.StringIO())
        env = make_globals(host)
        run_source('x = 1', host=host, globals_env=env)
        self.assertFalse(env.defines('x'))


if __name__ == '__main__':
    unittest.main()
