"""
Built-in command tests: behaviors, the common-commands group and completion.
"""
import unittest
from unittest import TestCase

from transom import (
    BUILTINS,
    COMMON,
    PREDICATES,
    complete,
    define_prefix,
    do_call,
    do_exit,
    do_quit_all,
    do_quit_one,
    do_replace,
    do_stay,
    do_suspend,
    from_flag,
    quit_all,
    quit_one,
    resume,
    save_values,
    set_values,
    suspend,
)
from transom.layout import Spec, walk


def stage_file(session):
    pass


define_prefix(
    "commands-stage",
    ["Arguments", ("-u", "Update", "--update")],
    ["Actions", ("s", "Stage", stage_file)],
)


class CommonTest(TestCase):

    def bindings(self):
        return {node.key: node.command for _, node in walk(COMMON) if isinstance(node, Spec)}

    def testCommonKeys(self):
        bindings = self.bindings()
        self.assertIs(bindings["C-g"], quit_one)
        self.assertIs(bindings["C-q"], quit_all)
        self.assertIs(bindings["C-z"], suspend)
        self.assertIs(bindings["C-x s"], set_values)
        self.assertIs(bindings["C-x C-s"], save_values)
        self.assertEqual(len(bindings), 11)

    def testEveryCommonCommandHasABehavior(self):
        self.assertTrue(all(command in PREDICATES for command in self.bindings().values()))


class PredicateTest(TestCase):

    def testBehaviors(self):
        self.assertIs(PREDICATES[quit_one], do_quit_one)
        self.assertIs(PREDICATES[quit_all], do_quit_all)
        self.assertIs(PREDICATES[suspend], do_suspend)
        self.assertIs(PREDICATES[set_values], do_call)
        self.assertNotIn(resume, PREDICATES)
        self.assertIn(resume, BUILTINS)

    def testFromFlag(self):
        self.assertIs(from_flag(True), do_stay)
        self.assertIs(from_flag(True, nested=True), do_replace)
        self.assertIs(from_flag(False), do_exit)
        self.assertIs(from_flag(False, nested=True), do_exit)
        self.assertIs(from_flag(do_call), do_call)
        with self.assertRaises(TypeError):
            from_flag("stay")


class CompleteTest(TestCase):

    def testBuiltinsAndPrefixes(self):
        names = complete()
        self.assertIn("quit_one", names)
        self.assertIn("resume", names)
        self.assertIn("commands-stage", names)
        self.assertIn("stage_file", names)
        self.assertEqual(names, sorted(names))

    def testInfixCommandsAreLeftOut(self):
        self.assertNotIn("commands-stage:--update", complete())

    def testPrefixFilter(self):
        self.assertEqual(complete("commands-"), ["commands-stage"])
        self.assertEqual(complete("quit_"), ["quit_all", "quit_one"])
        self.assertEqual(complete("no-such-command"), [])


if __name__ == "__main__":
    unittest.main()
