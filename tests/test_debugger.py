import unittest

from tapebf import DebugSession, ExecutionState, Instruction, Program, format_state
from tapebf.debugger import _format_code_window, _to_input_bytes


def make_session(source: str, **kwargs) -> DebugSession:
    kwargs.setdefault("input_template", [])
    return DebugSession(Program.from_source(source), **kwargs)


class DebugSessionTests(unittest.TestCase):
    def test_initial_state(self) -> None:
        session = make_session("+++.")
        initial = session.current_state()
        self.assertIsNone(initial.instruction)
        self.assertEqual(initial.step, 0)
        self.assertEqual(initial.pc, 0)
        self.assertEqual(len(session.history), 1)

    def test_basic_stepping(self) -> None:
        session = make_session("+++.", tape_window=2)
        states = session.step_forward(2)
        self.assertEqual(len(states), 2)
        self.assertEqual(states[-1].step, 2)
        self.assertEqual(states[-1].instruction, Instruction.INCREMENT)
        self.assertFalse(session.is_finished())

    def test_finishes_with_output(self) -> None:
        session = make_session("+" * 66 + ".")
        session.run_until_break()
        self.assertTrue(session.is_finished())
        self.assertEqual(session.current_state().output, "B")
        self.assertEqual(session.step_forward(1), [])

    def test_empty_program_finishes_on_first_step(self) -> None:
        session = make_session("")
        states = session.step_forward(5)
        self.assertEqual(len(states), 1)
        self.assertTrue(session.is_finished())

    def test_step_forward_zero_count_keeps_state(self) -> None:
        session = make_session("++", history_limit=5)
        initial_state = session.current_state()
        self.assertEqual(session.step_forward(0), [])
        self.assertIs(session.current_state(), initial_state)
        self.assertIsNone(session.hit_breakpoint)

    def test_breakpoint(self) -> None:
        session = make_session("+++.")
        session.add_breakpoint(2)
        session.run_until_break()
        self.assertEqual(session.hit_breakpoint, 2)
        self.assertEqual(session.current_state().pc, 2)
        self.assertFalse(session.is_finished())

    def test_breakpoint_inside_loop_hits_each_iteration(self) -> None:
        session = make_session("++[-]")
        session.add_breakpoint(4)
        session.run_until_break()
        self.assertEqual(session.current_state().step, 4)
        session.run_until_break()
        self.assertEqual(session.hit_breakpoint, 4)
        self.assertEqual(session.current_state().step, 7)

    def test_run_until_break_limit_bounds_infinite_loop(self) -> None:
        session = make_session("+[]")
        states = session.run_until_break(limit=50)
        self.assertEqual(len(states), 50)
        self.assertFalse(session.is_finished())

    def test_history_limit_discards_old_entries(self) -> None:
        session = make_session("+++++.", history_limit=3)
        session.step_forward(5)
        self.assertEqual(len(session.history), 3)
        self.assertGreater(session.history[0].step, 0)
        self.assertEqual(session.history[-1], session.current_state())

    def test_restart(self) -> None:
        session = make_session("+.")
        session.step_forward(3)
        self.assertTrue(session.is_finished())
        session.restart()
        self.assertFalse(session.is_finished())
        self.assertEqual(session.current_state().step, 0)
        self.assertEqual(len(session.history), 1)

    def test_input_template_replayed_after_restart(self) -> None:
        session = make_session(",.", input_template=_to_input_bytes("Q"))
        session.run_until_break()
        session.restart()
        session.run_until_break()
        self.assertEqual(session.current_state().output, "Q")

    def test_watch_pauses_before_each_occurrence(self) -> None:
        session = make_session("++.>+.")
        session.watch(Instruction.OUTPUT)
        session.run_until_break()
        self.assertEqual(session.hit_breakpoint, 2)
        session.run_until_break()
        self.assertEqual(session.hit_breakpoint, 5)
        self.assertTrue(session.unwatch("."))
        self.assertFalse(session.unwatch("."))
        session.run_until_break()
        self.assertTrue(session.is_finished())
        self.assertIsNone(session.hit_breakpoint)

    def test_clear_breakpoints_drops_watches(self) -> None:
        session = make_session("+.+.")
        session.add_breakpoint(3)
        session.watch(Instruction.OUTPUT)
        session.clear_breakpoints()
        session.run_until_break()
        self.assertTrue(session.is_finished())

    def test_breakpoint_management_helpers(self) -> None:
        session = make_session("+++.")
        session.add_breakpoint(3)
        session.add_breakpoint(1)
        self.assertEqual(session.list_breakpoints(), [1, 3])
        self.assertTrue(session.remove_breakpoint(1))
        self.assertFalse(session.remove_breakpoint(99))
        session.clear_breakpoints()
        self.assertEqual(session.list_breakpoints(), [])


class FormattingTests(unittest.TestCase):
    def test_to_input_bytes(self) -> None:
        self.assertEqual(_to_input_bytes("Az0"), [65, 122, 48])

    def test_to_input_bytes_rejects_wide_characters(self) -> None:
        with self.assertRaises(UnicodeEncodeError):
            _to_input_bytes("\u20ac")

    def test_format_state_labels_initial_and_final_states(self) -> None:
        session = make_session("+")
        self.assertIn("instruction='(init)'", format_state(session.current_state(), session.code))
        session.run_until_break()
        final = format_state(session.current_state(), session.code)
        self.assertIn("instruction='(end)'", final)
        self.assertIn("code=+[END]", final)

    def test_format_code_window_marks_end(self) -> None:
        self.assertEqual(_format_code_window("+", 5), "+[END]")
        self.assertEqual(_format_code_window("", 0), "(empty)")

    def test_format_state_renders_core_sections(self) -> None:
        state = ExecutionState(
            step=3,
            pc=1,
            instruction=Instruction.INCREMENT,
            pointer=1,
            tape_start=0,
            tape=[1, 2, 3],
            output="A",
            code_length=3,
            loop_depth=0,
        )
        rendered = format_state(state, "++.")
        self.assertIn("step=3 pc=1/3 instruction='+' pointer=1 depth=0", rendered)
        self.assertIn("output='A'", rendered)
        self.assertIn("[1:002]", rendered)
        self.assertIn("code=+[+].", rendered)


if __name__ == "__main__":
    unittest.main()
