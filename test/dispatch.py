"""
Session tests: the per-key state machine end to end, through a scripted host.

Scope
- Entering, staying, exiting and exporting values.
- Nested menus, the stack, suspending and resuming.
- Pending key sequences, undefined keys, inapt suffixes.
- Help and edit modes.
- Reads (answered, cancelled, failing), failing commands, failing renders
  and conflicts.
- Deferred display.

Conventions
- Test method names follow CamelCase per project convention.
- Reads are answered from the host's queue (see hosts.ScriptedHost).
"""
import unittest
from unittest import TestCase

from hosts import SessionMixin

from transom import (
    CommandFailure,
    ConflictError,
    EndOfHistoryWarning,
    InaptSuffixWarning,
    Outcome,
    ReadCancelled,
    RenderFailure,
    RuntimeReadError,
    State,
    UndefinedKeyWarning,
    define_prefix,
    get_current_value,
    resume,
)

calls = []
broken = []


def show_log(session):
    """Show the commit log."""
    calls.append(("log", session.args))


def refresh(session):
    calls.append(("refresh", session.args))


def explode(session):
    raise ValueError("boom")


def reenter(session):
    session.press("l")


def child_action(session):
    calls.append(("child", session.args))


def fragile_description(suffix):
    if broken:
        raise LookupError("description unavailable")
    return "Log"


def break_display(session):
    broken.append(True)


define_prefix(
    "dispatch-log",
    ["Arguments",
        ("-a", "All", "--all"),
        ("-A", "Author", "--author="),
        (6, "-f", "First parent", "--first-parent")],
    ["Actions",
        ("l", "Log", show_log),
        ("r", "Refresh", refresh, {"transient": True}),
        ("x", "Explode", explode),
        ("i", "Inapt", show_log, {"inapt_if": lambda instance: True}),
        ("R", "Reenter", reenter)],
    description="Show commit logs.",
)

define_prefix(
    "dispatch-nested",
    ["Arguments", ("-v", "Verbose", "--verbose")],
    ["Menus", ("m", "Child menu", define_prefix(
        "dispatch-nested-child",
        ("-A", "Author", "--author="),
        ("c", "Child action", child_action),
    ))],
)

define_prefix(
    "dispatch-sticky",
    ["Actions", ("l", "Log", show_log), ("q", "Quit", show_log, {"transient": False})],
    transient_suffix=True,
    transient_non_suffix=True,
)

define_prefix(
    "dispatch-fragile",
    ("l", show_log, {"description": fragile_description}),
    ("b", "Break display", break_display, {"transient": True}),
)

define_prefix(
    "dispatch-conflicting",
    ("a", "Log", show_log),
    ("a", "Refresh", refresh),
)

define_prefix(
    "dispatch-outer",
    ["Menus", ("m", "Conflicting menu", define_prefix("dispatch-conflicting-inner", ("a", "Log", show_log),
                                                      ("a", "Refresh", refresh)))],
)


class DispatchTestCase(SessionMixin, TestCase):

    def setUp(self):
        super().setUp()
        calls.clear()
        broken.clear()


class ScenarioTest(DispatchTestCase):

    def testEnter(self):
        instance = self.session.enter("dispatch-log")
        self.assertEqual(self.session.state, State.ACTIVE)
        self.assertIs(self.session.prefix, instance)
        self.assertIsNotNone(self.host.keymap)
        self.assertEqual(len(self.host.shown), 1)

    def testSwitchOptionAndExit(self):
        self.answer("me")
        self.session.enter("dispatch-log")
        action = self.session.press("-a")
        self.assertEqual(action.behavior, "do_stay")
        self.assertEqual(action.outcome, Outcome.STAY)
        self.assertEqual(self.session.get_value(), ["--all"])
        self.session.press("-A")
        self.assertEqual(self.session.get_value(), ["--all", "--author=me"])
        action = self.session.press("l")
        self.assertEqual(action.behavior, "do_exit")
        self.assertEqual(action.value, ["--all", "--author=me"])
        self.assertEqual(action.state, State.INACTIVE)
        self.assertEqual(calls, [("log", ["--all", "--author=me"])])
        self.assertIsNone(self.session.exported)
        self.assertIsNone(self.host.keymap)
        self.assertEqual(self.session.stores.history.get("dispatch-log"), [["--all", "--author=me"]])

    def testReadUsesHistory(self):
        self.session.stores.history.push("dispatch-log:--author=", ["you"], 10)
        self.answer("me")
        self.session.enter("dispatch-log")
        self.session.press("-A")
        prompt, initial, history, choices = self.host.reads[0]
        self.assertEqual(prompt, "--author=")
        self.assertIsNone(initial)
        self.assertEqual(history, ["you"])
        self.assertEqual(self.session.stores.history.get("dispatch-log:--author="), [["me"], ["you"]])

    def testTransientSuffixStays(self):
        self.session.enter("dispatch-log")
        self.session.press("-a")
        action = self.session.press("r")
        self.assertEqual(action.behavior, "do_stay")
        self.assertEqual(self.session.state, State.ACTIVE)
        self.assertEqual(calls, [("refresh", ["--all"])])

    def testPrefixFallbacks(self):
        self.session.enter("dispatch-sticky")
        self.assertEqual(self.session.press("l").behavior, "do_stay")
        self.assertTrue(self.session.active)
        self.assertEqual(self.session.execute(refresh).behavior, "do_stay")
        self.assertTrue(self.session.active)
        self.assertEqual(self.session.press("q").behavior, "do_exit")
        self.assertFalse(self.session.active)

    def testExitCallbacksSeeExportedValue(self):
        seen = []
        self.session.on_exit.append(lambda session: seen.append(session.args))
        self.session.enter("dispatch-log")
        self.session.press("-a")
        self.session.press("l")
        self.assertEqual(seen, [["--all"]])

    def testNestedMenuResumesParent(self):
        self.session.enter("dispatch-nested")
        self.session.press("-v")
        snapshot = [(suffix.key, type(suffix).__kind__, suffix.value) for suffix in self.session.prefix.suffixes]
        action = self.session.press("m")
        self.assertEqual(action.behavior, "do_replace")
        self.assertEqual(self.session.prefix.name, "dispatch-nested-child")
        self.assertEqual(len(self.session.stack), 1)
        action = self.session.press("C-g")
        self.assertEqual(action.behavior, "do_quit_one")
        self.assertEqual(self.session.prefix.name, "dispatch-nested")
        self.assertEqual(
            [(suffix.key, type(suffix).__kind__, suffix.value) for suffix in self.session.prefix.suffixes],
            snapshot,
        )
        self.assertEqual(self.session.get_value(), ["--verbose"])
        self.assertEqual(len(self.session.stack), 0)

    def testExitFromNestedMenuClearsStack(self):
        self.session.enter("dispatch-nested")
        self.session.press("m")
        self.session.press("c")
        self.assertFalse(self.session.active)
        self.assertEqual(len(self.session.stack), 0)
        self.assertEqual(self.session.state, State.INACTIVE)
        self.assertEqual(calls, [("child", [])])

    def testQuitAll(self):
        self.session.enter("dispatch-nested")
        self.session.press("m")
        self.session.press("C-q")
        self.assertEqual(self.session.state, State.INACTIVE)
        self.assertEqual(len(self.session.stack), 0)

    def testSuspendAndResume(self):
        self.session.enter("dispatch-log")
        self.session.press("-a")
        self.session.press("C-z")
        self.assertEqual(self.session.state, State.SUSPENDED)
        self.assertFalse(self.session.active)
        action = self.session.execute(resume)
        self.assertIs(action.command, resume)
        self.assertEqual(self.session.state, State.ACTIVE)
        self.assertEqual(self.session.get_value(), ["--all"])
        self.assertIsNone(self.session.resume())

    def testRun(self):
        actions = self.session.run("dispatch-log", "-a l")
        self.assertEqual([action.behavior for action in actions], [None, "do_stay", "do_exit"])
        self.assertEqual(calls, [("log", ["--all"])])

    def testEnteringFromOutsideDiscardsActiveMenu(self):
        self.session.enter("dispatch-nested")
        self.session.press("m")
        self.session.enter("dispatch-log")
        self.assertEqual(self.session.prefix.name, "dispatch-log")
        self.assertEqual(len(self.session.stack), 0)


class KeyTest(DispatchTestCase):

    def testPendingSequence(self):
        self.session.enter("dispatch-log")
        action = self.session.press("C-x")
        self.assertTrue(action.pending)
        self.assertEqual(self.session.pending, ("C-x",))
        action = self.session.press("t")
        self.assertEqual(action.keys, ("C-x", "t"))
        self.assertTrue(self.session.show_common)
        self.assertEqual(self.session.pending, ())

    def testAbortPendingSequence(self):
        self.session.enter("dispatch-log")
        self.session.press("C-x")
        action = self.session.press("C-g")
        self.assertEqual(action.behavior, "abort")
        self.assertEqual(self.session.pending, ())
        self.assertTrue(self.session.active)

    def testUndefinedKey(self):
        self.session.enter("dispatch-log")
        action = self.session.press("z")
        self.assertEqual(action.behavior, "do_warn")
        self.assertEqual(self.session.state, State.ACTIVE)
        self.assertIsInstance(action.notices[0], UndefinedKeyWarning)
        self.assertIsInstance(self.host.notices[0], UndefinedKeyWarning)
        self.assertEqual(self.session.pending, ())

    def testLevelHidesKeys(self):
        self.session.enter("dispatch-log")
        self.assertEqual(self.session.press("-f").behavior, "do_warn")

    def testInaptSuffix(self):
        self.session.enter("dispatch-log")
        action = self.session.press("i")
        self.assertEqual(action.behavior, "do_noop")
        self.assertIsInstance(action.notices[0], InaptSuffixWarning)
        self.assertEqual(calls, [])
        self.assertTrue(self.session.active)

    def testInactiveSessionIgnoresKeys(self):
        action = self.session.press("a")
        self.assertEqual(action.state, State.INACTIVE)
        self.assertIsNone(action.command)

    def testKeySubstitution(self):
        session = self.open(substitute_key=lambda key: "L" if key == "l" else key)
        session.enter("dispatch-log")
        self.assertEqual(session.press("l").behavior, "do_warn")
        self.assertEqual(session.press("L").behavior, "do_exit")


class ModeTest(DispatchTestCase):

    def testHelpForCommand(self):
        self.session.enter("dispatch-log")
        self.session.press("C-h")
        self.assertEqual(self.session.state, State.HELP)
        action = self.session.press("l")
        self.assertEqual(calls, [])
        self.assertEqual(len(self.host.helps), 1)
        self.assertEqual(action.outcome, Outcome.STAY)
        self.assertEqual(self.session.state, State.ACTIVE)

    def testHelpForPrefix(self):
        self.session.enter("dispatch-log")
        self.session.press("C-h")
        self.session.press("C-h")
        self.assertEqual(len(self.host.helps), 1)
        self.assertEqual(self.session.state, State.ACTIVE)

    def testQuitOneLeavesHelp(self):
        self.session.enter("dispatch-log")
        self.session.press("C-h")
        self.session.press("C-g")
        self.assertEqual(self.session.state, State.ACTIVE)
        self.assertEqual(self.host.helps, [])

    def testQuitAllInHelp(self):
        self.session.enter("dispatch-log")
        self.session.press("C-h")
        self.session.press("C-q")
        self.assertEqual(self.session.state, State.INACTIVE)

    def testCustomHelp(self):
        seen = []
        definition = define_prefix(
            "dispatch-custom-help",
            ("l", "Log", show_log, {"help": lambda session: seen.append(session.current_suffix.key)}),
        )
        self.session.enter(definition)
        self.session.press("C-h")
        self.session.press("l")
        self.assertEqual(seen, ["l"])
        self.assertEqual(self.host.helps, [])

    def testEditLevels(self):
        self.answer("2")
        self.session.enter("dispatch-log")
        self.session.press("C-x l")
        self.assertEqual(self.session.state, State.EDIT)
        self.assertIn("-f", [suffix.key for suffix in self.session.prefix.suffixes])
        self.session.press("l")
        self.assertEqual(calls, [])
        self.assertEqual(self.session.stores.levels.suffix_level("dispatch-log", "show_log"), 2)
        self.assertEqual(self.host.reads[0][1], "1")
        self.assertEqual(self.session.state, State.EDIT)
        self.session.press("C-g")
        self.assertEqual(self.session.state, State.ACTIVE)
        self.assertNotIn("-f", [suffix.key for suffix in self.session.prefix.suffixes])

    def testEditPrefixLevel(self):
        self.answer("6")
        self.session.enter("dispatch-log")
        self.session.press("C-x l")
        self.session.press("C-x l")
        self.session.press("C-g")
        self.assertEqual(self.session.stores.levels.prefix_level("dispatch-log"), 6)
        self.assertEqual(self.session.prefix.level, 6)
        self.assertIn("-f", [suffix.key for suffix in self.session.prefix.suffixes])

    def testEditRejectsInvalidLevel(self):
        self.answer("9")
        self.session.enter("dispatch-log")
        self.session.press("C-x l")
        action = self.session.press("l")
        self.assertIsNone(self.session.stores.levels.suffix_level("dispatch-log", "show_log"))
        self.assertEqual(action.notices[0].code.name, "INVALID_INPUT")


class ValueCommandTest(DispatchTestCase):

    def testSetValues(self):
        self.session.enter("dispatch-log")
        self.session.press("-a")
        action = self.session.press("C-x s")
        self.assertEqual(action.behavior, "do_call")
        self.assertTrue(self.session.active)
        self.assertEqual(self.session.stores.values.get("dispatch-log"), ["--all"])
        self.session.press("C-q")
        other = self.open()
        self.assertIsNone(other.stores.values.get("dispatch-log"))

    def testSaveValues(self):
        self.session.enter("dispatch-log")
        self.session.press("-a")
        self.session.press("C-x C-s")
        self.session.press("C-q")
        other = self.open()
        other.enter("dispatch-log")
        self.assertEqual(other.get_value(), ["--all"])

    def testResetValues(self):
        self.session.enter("dispatch-log")
        self.session.press("-a")
        self.session.press("C-x C-s")
        self.session.press("C-x C-k")
        self.assertEqual(self.session.get_value(), [])
        self.assertIsNone(self.session.stores.values.get("dispatch-log"))

    def testHistoryNavigation(self):
        self.session.run("dispatch-log", "-a l")
        self.session.enter("dispatch-log")
        self.assertEqual(self.session.get_value(), [])
        self.session.press("C-M-p")
        self.assertEqual(self.session.get_value(), ["--all"])
        action = self.session.press("C-M-p")
        self.assertIsInstance(action.notices[0], EndOfHistoryWarning)
        self.session.press("C-M-n")
        self.assertEqual(self.session.get_value(), [])

    def testKeysReachResetSuffixes(self):
        self.session.enter("dispatch-log")
        self.session.press("-a")
        self.session.press("C-x C-k")
        self.assertEqual(self.session.get_value(), [])
        self.assertIs(self.host.keymap, self.session.keymap)
        self.session.press("-a")
        self.assertEqual(self.session.get_value(), ["--all"])

    def testKeysReachHistorySuffixes(self):
        self.session.run("dispatch-log", "-a l")
        self.session.enter("dispatch-log")
        self.session.press("C-M-p")
        self.assertEqual(self.session.get_value(), ["--all"])
        self.session.press("-a")
        self.assertEqual(self.session.get_value(), [])
        self.session.press("l")
        self.assertEqual(calls[-1], ("log", []))

    def testHistoryIsIdempotent(self):
        self.session.run("dispatch-log", "-a l")
        self.session.run("dispatch-log", "-a l")
        self.assertEqual(self.session.stores.history.get("dispatch-log"), [["--all"]])

    def testCurrentValueOfInactivePrefix(self):
        self.assertEqual(get_current_value("dispatch-log", self.session), [])
        self.session.stores.values.set("dispatch-log", ["--all"])
        self.assertEqual(get_current_value("dispatch-log", self.session), ["--all"])


class FailureTest(DispatchTestCase):

    def testReadCancelledKeepsValue(self):
        self.answer(ReadCancelled("--author="))
        self.session.enter("dispatch-log")
        action = self.session.press("-A")
        self.assertIsNone(action.error)
        self.assertTrue(self.session.active)
        self.assertEqual(self.session.get_value(), [])

    def testReadFailureTearsDown(self):
        self.answer(OSError("terminal closed"))
        self.session.enter("dispatch-nested")
        self.session.press("m")
        self.assertEqual(len(self.session.stack), 1)
        with self.assertLogs("transom", "ERROR"):
            action = self.session.press("-A")
        self.assertIsInstance(action.error, RuntimeReadError)
        self.assertEqual(self.session.state, State.INACTIVE)
        self.assertEqual(len(self.session.stack), 0)
        self.assertIs(self.host.notices[-1], action.error)

    def testCommandFailureTearsDown(self):
        self.session.enter("dispatch-log")
        with self.assertLogs("transom", "ERROR"):
            action = self.session.press("x")
        self.assertIsInstance(action.error, CommandFailure)
        self.assertIsInstance(action.error.__cause__, ValueError)
        self.assertEqual(self.session.state, State.INACTIVE)

    def testRenderFailureOnEntryTearsDown(self):
        broken.append(True)
        with self.assertLogs("transom", "ERROR"):
            with self.assertRaises(RenderFailure) as context:
                self.session.enter("dispatch-fragile")
        self.assertIsInstance(context.exception.__cause__, LookupError)
        self.assertEqual(self.session.state, State.INACTIVE)
        self.assertIsNone(self.host.keymap)
        self.assertEqual(self.host.shown, [])
        self.assertIs(self.host.notices[-1], context.exception)

    def testRenderFailureAfterCommandTearsDown(self):
        self.session.enter("dispatch-fragile")
        with self.assertLogs("transom", "ERROR"):
            action = self.session.press("b")
        self.assertEqual(action.behavior, "do_stay")
        self.assertIsInstance(action.error, RenderFailure)
        self.assertEqual(self.session.state, State.INACTIVE)
        self.assertIsNone(self.host.keymap)
        self.assertEqual(self.host.notices, [action.error])

    def testRenderFailureWhilePendingTearsDown(self):
        self.session.enter("dispatch-fragile")
        broken.append(True)
        with self.assertLogs("transom", "ERROR"):
            action = self.session.press("C-x")
        self.assertIsInstance(action.error, RenderFailure)
        self.assertEqual(self.session.state, State.INACTIVE)
        self.assertIsNone(self.host.keymap)

    def testReentrantPressFails(self):
        self.session.enter("dispatch-log")
        with self.assertLogs("transom", "ERROR"):
            action = self.session.press("R")
        self.assertIsInstance(action.error, CommandFailure)
        self.assertIsInstance(action.error.__cause__, RuntimeError)
        self.assertEqual(calls, [])

    def testConflictOnEntryLeavesSessionUntouched(self):
        session = self.open(detect_conflicts=True)
        with self.assertRaises(ConflictError):
            session.enter("dispatch-conflicting")
        self.assertEqual(session.state, State.INACTIVE)
        self.assertIsNone(self.host.keymap)

    def testConflictInNestedMenuTearsDown(self):
        session = self.open(detect_conflicts=True)
        session.enter("dispatch-outer")
        with self.assertLogs("transom", "ERROR"):
            with self.assertRaises(ConflictError):
                session.press("m")
        self.assertEqual(session.state, State.INACTIVE)
        self.assertEqual(len(session.stack), 0)


class DisplayTimingTest(DispatchTestCase):

    def testDeferredDisplay(self):
        session = self.open(show_delay=0.5)
        session.enter("dispatch-log")
        self.assertEqual(self.host.shown, [])
        self.host.fire()
        self.assertEqual(len(self.host.shown), 1)

    def testKeyCancelsDeferredDisplay(self):
        session = self.open(show_delay=0.5)
        session.enter("dispatch-log")
        timer = self.host.timers[0]
        session.press("-a")
        self.assertFalse(timer.pending)
        self.assertEqual(len(self.host.shown), 1)

    def testDeferredRenderFailureTearsDown(self):
        session = self.open(show_delay=0.5)
        session.enter("dispatch-fragile")
        self.assertIsNotNone(self.host.keymap)
        broken.append(True)
        with self.assertLogs("transom", "ERROR"):
            self.host.fire()
        self.assertEqual(session.state, State.INACTIVE)
        self.assertIsNone(self.host.keymap)
        self.assertIsInstance(self.host.notices[-1], RenderFailure)

    def testCloseFlushesStores(self):
        self.session.enter("dispatch-log")
        self.session.press("-a")
        self.session.press("l")
        self.session.close()
        self.assertEqual(self.open().stores.history.get("dispatch-log"), [["--all"]])


if __name__ == "__main__":
    unittest.main()
