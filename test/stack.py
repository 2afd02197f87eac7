"""
Stack tests: ordering and snapshots of live instances.
"""
import tempfile
import unittest
from unittest import TestCase

from transom import Config, Stack, StackEntry, Stores, define_prefix, instantiate

define_prefix("stack-menu", ["Arguments", ("-a", "All", "--all")], scope="here")


class StackTest(TestCase):

    def entry(self, name, value=()):
        return StackEntry(name, (), False, None, value)

    def testLastInFirstOut(self):
        stack = Stack()
        first, second = self.entry("first"), self.entry("second")
        stack.push(first)
        stack.push(second)
        self.assertEqual(len(stack), 2)
        self.assertIs(stack.peek(), second)
        self.assertEqual(list(stack), [second, first])
        self.assertIs(stack.pop(), second)
        self.assertIs(stack.pop(), first)
        self.assertIsNone(stack.pop())
        self.assertIsNone(stack.peek())
        self.assertFalse(stack)

    def testClear(self):
        stack = Stack()
        stack.push(self.entry("first"))
        stack.clear()
        self.assertEqual(len(stack), 0)

    def testCapture(self):
        directory = tempfile.TemporaryDirectory()
        self.addCleanup(directory.cleanup)
        config = Config(directory=directory.name)
        instance = instantiate("stack-menu", Stores(config.directory), config, value=["--all"])
        entry = StackEntry.capture(instance)
        self.assertIs(entry.prefix, instance.definition)
        self.assertEqual(entry.value, ["--all"])
        self.assertEqual(entry.scope, "here")
        self.assertFalse(entry.edit)
        self.assertEqual(entry.tree, instance.tree)
        instance.set_infix_value(instance.suffixes[0], None)
        self.assertEqual(entry.value, ["--all"])
        stack = Stack()
        stack.push(entry)
        self.assertEqual(repr(stack), "stack(stack-menu)")


if __name__ == "__main__":
    unittest.main()
