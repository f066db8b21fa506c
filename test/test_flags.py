"""
Flags module behavioral tests (specs, declaration, parsing, defaults rendering).

Scope
- Validate spec construction: names, dest defaults, choices and metavar rules.
- Validate FlagSet declaration and lookup by dest or alias.
- Validate parsing: stop rules, inline/spaced values, conversion and faults.
- Validate the standard flag summary produced by defaults().

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from arbor import Option, Flag, FlagSet, flagset
from arbor.faults import (
    FaultCode,
    FlagError,
    MalformedFlagError,
    UnknownFlagError,
    FlagAssignmentError,
    DuplicatedFlagError,
    FlagValueRequiredError,
    InvalidFlagValueError,
    HelpRequested,
)


class TestSpecs(TestCase):
    """Construction rules for Option and Flag."""

    def testDestDefaultsToLongestName(self):
        self.assertEqual(Option("-c", "--config").dest, "config")
        self.assertEqual(Flag("-n", "--dry-run").dest, "dry-run")

    def testExplicitDest(self):
        self.assertEqual(Option("-c", dest="path").dest, "path")

    def testOptionDefaultIsNoneWhenOmitted(self):
        self.assertIsNone(Option("--config").default)

    def testFlagDefaultIsFalse(self):
        self.assertIs(Flag("--verbose").default, False)

    def testNamesRequired(self):
        with self.assertRaises(TypeError):
            Option()

    def testMalformedNameRejected(self):
        for name in ("config", "---config", "-1", "--con fig"):
            with self.subTest(name=name):
                with self.assertRaises(ValueError):
                    Flag(name)

    def testNamesComparedWithoutDashes(self):
        with self.assertRaises(ValueError):
            Flag("-verbose", "--verbose")

    def testMetavarAndChoicesAreExclusive(self):
        with self.assertRaises(TypeError):
            Option("--mode", metavar="MODE", choices=("a", "b"))

    def testDuplicatedChoicesRejected(self):
        with self.assertRaises(ValueError):
            Option("--mode", choices=["a", "a"])

    def testChoicesFromGeneratorAreKept(self):
        self.assertEqual(Option("--mode", choices=(x for x in "ab")).choices, ("a", "b"))

    def testEmptyDescrRejected(self):
        with self.assertRaises(ValueError):
            Flag("--verbose", descr="  ")

    def testTypeMustBeCallable(self):
        with self.assertRaises(TypeError):
            Option("--count", type="int")


class TestDeclaration(TestCase):
    """Declaring specs on a FlagSet."""

    def testDuplicateNameAcrossSpecsRejected(self):
        flags = flagset("tool")
        flags.flag("-v", "--verbose")
        with self.assertRaises(ValueError):
            flags.option("-v", "--version")

    def testDuplicateDestRejected(self):
        flags = flagset("tool")
        flags.flag("--verbose")
        with self.assertRaises(ValueError):
            flags.flag("-V", dest="verbose")

    def testAddRejectsNonSpecs(self):
        with self.assertRaises(TypeError):
            flagset("tool").add("--verbose")

    def testDefaultsAvailableBeforeParse(self):
        flags = flagset("tool")
        flags.option("-c", "--config", default="config.yml")
        self.assertEqual(flags["config"], "config.yml")
        self.assertEqual(flags["-c"], "config.yml")
        self.assertEqual(flags.values, {"config": "config.yml"})
        self.assertFalse(flags.parsed)

    def testContainsAndMissingKey(self):
        flags = flagset("tool")
        flags.flag("-v", "--verbose")
        self.assertIn("verbose", flags)
        self.assertIn("-v", flags)
        self.assertNotIn("quiet", flags)
        with self.assertRaises(KeyError):
            flags["quiet"]

    def testFlagsetReturnsFreshSet(self):
        self.assertIsInstance(flagset("tool"), FlagSet)
        self.assertIsNot(flagset("tool"), flagset("tool"))
        self.assertEqual(flagset("tool").name, "tool")


class TestParse(TestCase):
    """Parsing leading flags from an argument list."""

    def setUp(self):
        self.flags = flagset("tool")
        self.flags.option("-c", "--config", default="config.yml", descr="Configuration file")
        self.flags.option("-n", "--count", type=int, default=1)
        self.flags.option("--mode", choices=("fast", "slow"), default="fast")
        self.flags.flag("-v", "--verbose")

    def testStopsAtFirstNonFlag(self):
        self.assertEqual(self.flags.parse(["-v", "list", "-c", "x"]), ["list", "-c", "x"])
        self.assertTrue(self.flags["verbose"])
        self.assertEqual(self.flags["config"], "config.yml")

    def testDoubleDashIsConsumed(self):
        self.assertEqual(self.flags.parse(["-v", "--", "-c"]), ["-c"])

    def testLoneDashStops(self):
        self.assertEqual(self.flags.parse(["-", "-v"]), ["-", "-v"])
        self.assertFalse(self.flags["verbose"])

    def testOneOrTwoDashesAreEquivalent(self):
        self.flags.parse(["-config=a.yml", "--count", "4"])
        self.assertEqual(self.flags["config"], "a.yml")
        self.assertEqual(self.flags["count"], 4)

    def testInlineEmptyValue(self):
        self.flags.parse(["--config="])
        self.assertEqual(self.flags["config"], "")

    def testInlineValueKeepsEqualSigns(self):
        self.flags.parse(["--config=a=b"])
        self.assertEqual(self.flags["config"], "a=b")

    def testSpacedValueMayLookLikeFlag(self):
        self.flags.parse(["--config", "-v"])
        self.assertEqual(self.flags["config"], "-v")
        self.assertFalse(self.flags["verbose"])

    def testParseResetsPreviousValues(self):
        self.flags.parse(["-v", "-n", "3"])
        self.flags.parse([])
        self.assertFalse(self.flags["verbose"])
        self.assertEqual(self.flags["count"], 1)

    def testArgsAndParsedAreRecorded(self):
        self.flags.parse(["-v", "a", "b"])
        self.assertEqual(self.flags.args, ("a", "b"))
        self.assertTrue(self.flags.parsed)

    def testUnknownFlagSuggestsCloseMatch(self):
        with self.assertRaises(UnknownFlagError) as captured:
            self.flags.parse(["--confg=x"])
        self.assertEqual(captured.exception.options["code"], FaultCode.UNKNOWN_FLAG)
        self.assertIn("--config", captured.exception.options["suggestions"])
        self.assertIn("did you mean '--config'?", captured.exception.options["hint"])

    def testMalformedToken(self):
        with self.assertRaises(MalformedFlagError):
            self.flags.parse(["---v"])

    def testFlagWithValue(self):
        with self.assertRaises(FlagAssignmentError):
            self.flags.parse(["--verbose=true"])

    def testDuplicatedFlag(self):
        with self.assertRaises(DuplicatedFlagError):
            self.flags.parse(["-v", "--verbose"])

    def testMissingValue(self):
        with self.assertRaises(FlagValueRequiredError):
            self.flags.parse(["--config"])

    def testConverterFailure(self):
        with self.assertRaises(InvalidFlagValueError) as captured:
            self.flags.parse(["--count=many"])
        self.assertIsInstance(captured.exception.options["exception"], ValueError)

    def testChoiceOutsideRange(self):
        with self.assertRaises(InvalidFlagValueError):
            self.flags.parse(["--mode=medium"])

    def testHelpRequestedWhenNotDeclared(self):
        for token in ("-h", "-help", "--help"):
            with self.subTest(token=token):
                with self.assertRaises(HelpRequested):
                    self.flags.parse(["-v", token])

    def testDeclaredHelpIsParsedNormally(self):
        flags = flagset("tool")
        flags.flag("-h", "--help")
        self.assertEqual(flags.parse(["-h", "x"]), ["x"])
        self.assertTrue(flags["help"])

    def testFaultsAreFlagErrors(self):
        with self.assertRaises(FlagError):
            self.flags.parse(["--nope"])

    def testStringArgumentRejected(self):
        with self.assertRaises(TypeError):
            self.flags.parse("-v")


class TestDefaults(TestCase):
    """Rendering of the standard flag summary."""

    def testOrderedByDestWithDefaults(self):
        flags = flagset("tool")
        flags.option("-r", "--reply-to", default="", descr="Reply to this status ID")
        flags.flag("--auto-reply", descr="Automatically populate reply based on mentions")
        flags.option("-c", "--config", default="config.yml", descr="Configuration file")
        self.assertEqual(flags.defaults(), "\n".join([
            "  --auto-reply",
            "        Automatically populate reply based on mentions",
            "  -c, --config <str>",
            "        Configuration file (default: 'config.yml')",
            "  -r, --reply-to <str>",
            "        Reply to this status ID",
        ]))

    def testMetavarChoicesAndTypes(self):
        flags = flagset("tool")
        flags.option("--mode", choices=("fast", "slow"))
        flags.option("--count", type=int, default=3)
        flags.option("--path", metavar="PATH")
        self.assertEqual(flags.defaults(), "\n".join([
            "  --count <int>",
            "        (default: 3)",
            "  --mode {'fast','slow'}",
            "  --path PATH",
        ]))

    def testEmptySet(self):
        self.assertEqual(flagset("tool").defaults(), "")


if __name__ == "__main__":
    unittest.main()
