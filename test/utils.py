"""
Tests for the Unset sentinel and the container helpers.

This module verifies:
- Singleton identity, falsy semantics and representation of Unset.
- Unset in isinstance unions.
- coalesce() keeps legitimate falsey values.
- freeze()/thaw() produce independent immutable/mutable containers.
- mirror() exposes read-only copies of backing fields.
"""
import unittest
from types import MappingProxyType
from unittest import TestCase

from transom.utils import Unset, UnsetType, coalesce, freeze, mirror, rename, thaw


class UnsetTest(TestCase):

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testFalsyButDistinct(self):
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertNotEqual(Unset, 0)
        self.assertNotEqual(Unset, "")

    def testRepr(self):
        self.assertEqual(repr(Unset), "Unset")

    def testUnionInIsinstance(self):
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertTrue(isinstance("key", str | Unset))
        self.assertFalse(isinstance(1, str | Unset))
        self.assertTrue(isinstance(Unset, Unset | bool))


class HelpersTest(TestCase):

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)
        self.assertEqual(coalesce([], [1]), [])

    def testFreeze(self):
        frozen = freeze({"choices": ["a", "b"], "tags": {"x"}})
        self.assertIsInstance(frozen, MappingProxyType)
        self.assertEqual(frozen["choices"], ("a", "b"))
        self.assertEqual(frozen["tags"], frozenset({"x"}))
        self.assertEqual(freeze("text"), "text")

    def testThawCopies(self):
        original = {"choices": ["a", "b"]}
        thawed = thaw(original)
        thawed["choices"].append("c")
        self.assertEqual(original, {"choices": ["a", "b"]})

    def testThawKeepsPairsAndUnset(self):
        self.assertEqual(thaw(("--", ("a", "b"))), ("--", ("a", "b")))
        self.assertIs(thaw(Unset), Unset)
        self.assertEqual(thaw(MappingProxyType({"a": (1,)})), {"a": (1,)})

    def testMirrorReturnsCopies(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = [1, 2]

        holder = Holder()
        holder.items.append(3)
        self.assertEqual(holder.items, [1, 2])
        with self.assertRaises(AttributeError):
            holder.items = []

    def testRename(self):
        @rename("renamed")
        def function():
            pass

        self.assertEqual(function.__name__, "renamed")
        self.assertEqual(function.__qualname__, "renamed")
        with self.assertRaises(TypeError):
            rename(function)


if __name__ == "__main__":
    unittest.main()
