"""
Incompatibility tests: declaration checks and unsetting conflicting infixes.
"""
import tempfile
import unittest
from unittest import TestCase

from transom import Config, DefinitionError, FaultCode, Stores, define_prefix, instantiate
from transom.exclusive import arguments_of, normalize_incompatible

changes = []

define_prefix(
    "exclusive-log",
    ["Arguments",
        ("-a", "All", "--all"),
        ("-f", "First parent", "--first-parent"),
        ("-m", "No merges", "--no-merges"),
        ("-c", "Color", {"argument_format": "--color=%s", "choices": ("always", "never")}),
        ("-C", "No color", "--no-color"),
        ("-v", "Mode", {"class": "variable", "argument": "--mode", "set": changes.append})],
    incompatible=[
        ["--all", "--first-parent", "--no-merges"],
        ["--color=always", "--no-color"],
        ["--mode", "--all"],
    ],
)


class NormalizeTest(TestCase):

    def testValid(self):
        self.assertEqual(normalize_incompatible([["--a", "--b"], ("--c", "--d", "--e")]),
                         (("--a", "--b"), ("--c", "--d", "--e")))
        self.assertEqual(normalize_incompatible(()), ())

    def testInvalid(self):
        for groups in ("--a --b", [["--a"]], [["--a", 1]], ["--a"], [None], 42):
            with self.subTest(groups=groups):
                with self.assertRaises(DefinitionError) as context:
                    normalize_incompatible(groups)
                self.assertEqual(context.exception.code, FaultCode.INVALID_INCOMPATIBLE)


class ResolveTest(TestCase):

    def setUp(self):
        directory = tempfile.TemporaryDirectory()
        self.addCleanup(directory.cleanup)
        config = Config(directory=directory.name)
        self.instance = instantiate("exclusive-log", Stores(config.directory), config)
        self.suffixes = {suffix.key: suffix for suffix in self.instance.suffixes}
        changes.clear()

    def set(self, key, value):
        self.instance.set_infix_value(self.suffixes[key], value)

    def testSettingUnsetsConflicting(self):
        self.set("-a", "--all")
        self.set("-m", "--no-merges")
        self.set("-f", "--first-parent")
        self.assertEqual(self.instance.get_value(), ["--first-parent"])

    def testUnsettingLeavesOthers(self):
        self.set("-a", "--all")
        self.set("-c", "always")
        self.set("-a", None)
        self.assertEqual(self.instance.get_value(), ["--color=always"])

    def testFormattedArguments(self):
        self.set("-c", "always")
        self.set("-C", "--no-color")
        self.assertEqual(self.instance.get_value(), ["--no-color"])
        self.set("-c", "never")
        self.assertEqual(self.instance.get_value(), ["--color=never", "--no-color"])
        self.set("-c", "always")
        self.assertEqual(self.instance.get_value(), ["--color=always"])

    def testUnsetGoesThroughVariableBinding(self):
        self.set("-v", "fast")
        self.assertEqual(changes, ["fast"])
        self.set("-a", "--all")
        self.assertIsNone(self.suffixes["-v"].value)
        self.assertEqual(changes, ["fast", None])

    def testArgumentsOf(self):
        self.suffixes["-c"].assign("never")
        self.assertEqual(arguments_of(self.suffixes["-c"]), {"--color=%s", "--color=never"})
        self.assertEqual(arguments_of(self.suffixes["-a"]), {"--all"})


if __name__ == "__main__":
    unittest.main()
