"""
Help module behavioral tests (synthesis and rendering).

Scope
- Validate HelpInfo synthesis: synopsis, usage normalization, flag block,
  one level of children and display names.
- Validate the three renderers and their byte-stability.

Conventions
- Test method names follow CamelCase per project convention.
- Renderers write to io.StringIO, which rich treats as a plain-text sink.
"""

from __future__ import annotations

import copy
import io
import unittest
from unittest import TestCase

from arbor import Command, HelpInfo, flagset, synthesize


def _render(info, method):
    sink = io.StringIO()
    getattr(info, method)(sink)
    return sink.getvalue()


class TestSynthesize(TestCase):
    """Building HelpInfo from commands."""

    def setUp(self):
        def set_flags(context, flags):
            flags.option("-r", "--reply-to", default="", descr="Reply to this status ID")
            flags.flag("--auto-reply", descr="Automatically populate reply based on mentions")

        self.update = Command(
            "update",
            usage="update [options] text...\nupdate\nupdate -file path",
            help="\n  Create a new status from the given text.\n\nLonger description.\n",
            set_flags=set_flags,
        )
        self.delete = Command("delete", commands=[Command("forever", help="Never shown.")])
        self.status = Command("status", help="Status commands.", commands=[self.update, self.delete])

    def testSynopsisIsFirstLineOfTrimmedHelp(self):
        info = synthesize(self.update)
        self.assertEqual(info.synopsis, "Create a new status from the given text.")
        self.assertEqual(info.help, "Create a new status from the given text.\n\nLonger description.")

    def testUsageStripsRedundantNameAndKeepsBareNameLine(self):
        self.assertEqual(synthesize(self.update).usage, (
            "Usage:\n\n"
            "  update [options] text...\n"
            "  update\n"
            "  update -file path"
        ))

    def testMissingUsageShowsName(self):
        self.assertEqual(synthesize(self.status).usage, "Usage:\n\n  status")

    def testBlankUsageLinesDropped(self):
        command = Command("tool", usage="\n  a\n\n  b  \n")
        self.assertEqual(synthesize(command).usage, "Usage:\n\n  tool a\n  tool b")

    def testFlagsBlock(self):
        self.assertEqual(synthesize(self.update).flags, (
            "Options:\n"
            "  --auto-reply\n"
            "        Automatically populate reply based on mentions\n"
            "  -r, --reply-to <str>\n"
            "        Reply to this status ID"
        ))

    def testNoFlagsWithoutDeclaration(self):
        self.assertIsNone(synthesize(self.status).flags)

    def testChildrenOnlyWhenRequested(self):
        self.assertEqual(synthesize(self.status).commands, ())
        names = [info.name for info in synthesize(self.status, True).commands]
        self.assertEqual(names, ["update", "delete"])

    def testChildrenNeverRecurse(self):
        info = synthesize(self.status, True)
        self.assertEqual(info.commands[1].commands, ())
        self.assertNotIn("forever", _render(info, "write_long"))

    def testEmptyHelpYieldsEmptySynopsis(self):
        info = synthesize(self.delete)
        self.assertEqual(info.synopsis, "")
        self.assertEqual(info.help, "")

    def testContextNameIsDisplayed(self):
        context = Command("tool", commands=[self.status]).new_context()
        context = copy.replace(context, command=self.status, name="st")
        self.assertEqual(synthesize(self.status, context=context).name, "st")
        self.assertEqual(synthesize(self.update, context=context).name, "update")

    def testExplicitNameWins(self):
        info = synthesize(self.update, name="status update")
        self.assertEqual(info.name, "status update")
        self.assertIn("  status update [options] text...", info.usage)

    def testSetFlagsReceivesContext(self):
        received = []
        command = Command("tool", set_flags=lambda context, flags: received.append(context))
        context = command.new_context()
        synthesize(command, context=context)
        self.assertEqual(received, [context])

    def testParsedFlagsAreReused(self):
        received = []

        def set_flags(context, flags):
            received.append(context)
            flags.option("-n", "--limit", default=5, type=int)

        command = Command("tool", set_flags=set_flags)
        context = command.new_context()
        context.flags = flagset("tool")
        context.flags.option("-n", "--limit", default=7, type=int)
        self.assertIn("(default: 7)", synthesize(command, context=context).flags)
        self.assertEqual(received, [])

    def testForeignContextIsDerivedForSetFlags(self):
        received = []

        def set_flags(context, flags):
            received.append(context)
            flags.option("-n", "--limit", default=context.config["limit"], type=int)

        child = Command("list", set_flags=set_flags)
        root = Command("tool", commands=[child])
        context = root.new_context({"limit": 5})

        self.assertIn("(default: 5)", synthesize(child, context=context).flags)
        self.assertIs(received[0].command, child)
        self.assertIs(received[0].config, context.config)
        self.assertIs(context.command, root)

    def testWithoutContextSetFlagsGetsFreshOne(self):
        received = []
        command = Command("tool", set_flags=lambda context, flags: received.append(context))
        synthesize(command)
        self.assertIs(received[0].command, command)

    def testChildSummariesSkipFlagDeclaration(self):
        def set_flags(context, flags):
            raise AssertionError("child flags declared")

        root = Command("tool", commands=[Command("list", help="List things.", set_flags=set_flags)])
        info = synthesize(root, True)
        self.assertEqual(info.commands[0].synopsis, "List things.")
        self.assertIsNone(info.commands[0].flags)

    def testDeclareFalseSkipsSetFlags(self):
        self.assertIsNone(synthesize(self.update, declare=False).flags)


class TestHelpInfo(TestCase):
    """Rendering and value semantics of HelpInfo."""

    def setUp(self):
        self.status = Command(
            "status",
            usage="status <command>",
            help="Status commands.\n\nManage statuses.",
            commands=[
                Command("update", help="Create a new status."),
                Command("delete"),
            ],
        )

    def testWriteUsage(self):
        self.assertEqual(_render(synthesize(self.status), "write_usage"), "Usage:\n\n  status <command>\n\n")

    def testWriteSynopsis(self):
        self.assertEqual(
            _render(synthesize(self.status), "write_synopsis"),
            "Usage:\n\n  status <command>\n\nStatus commands.\n\n",
        )

    def testWriteSynopsisPlaceholder(self):
        self.assertEqual(
            _render(synthesize(Command("tool")), "write_synopsis"),
            "Usage:\n\n  tool\n\n(no description available)\n\n",
        )

    def testWriteLong(self):
        self.assertEqual(_render(synthesize(self.status, True), "write_long"), (
            "Usage:\n\n"
            "  status <command>\n\n"
            "Status commands.\n\n"
            "Manage statuses.\n\n"
            "Subcommands:\n"
            "  status update : Create a new status.\n"
            "  status delete : (no description available)\n\n"
        ))

    def testWriteLongWithTopics(self):
        info = copy.replace(synthesize(Command("tool")), topics=[synthesize(Command("dates", help="Date formats."))])
        self.assertEqual(_render(info, "write_long"), (
            "Usage:\n\n"
            "  tool\n\n"
            "(no description available)\n\n"
            "Help topics:\n"
            "  dates : Date formats.\n\n"
        ))

    def testRenderingIsIdempotent(self):
        first = _render(synthesize(self.status, True), "write_long")
        second = _render(synthesize(self.status, True), "write_long")
        self.assertEqual(first, second)
        self.assertEqual(synthesize(self.status, True), synthesize(self.status, True))

    def testLongLinesAreNotWrapped(self):
        text = "word " * 60
        info = synthesize(Command("tool", help=text))
        self.assertIn(text.strip(), _render(info, "write_synopsis"))

    def testReplaceKeepsOtherFields(self):
        info = synthesize(self.status, True)
        renamed = copy.replace(info, name="st")
        self.assertEqual(renamed.name, "st")
        self.assertEqual(renamed.usage, info.usage)
        self.assertEqual(renamed.commands, info.commands)

    def testHashable(self):
        self.assertEqual(len({synthesize(self.status), synthesize(self.status)}), 1)

    def testDirectConstruction(self):
        info = HelpInfo("tool", synopsis="Short.", usage="Usage:\n\n  tool")
        self.assertEqual(_render(info, "write_synopsis"), "Usage:\n\n  tool\n\nShort.\n\n")


if __name__ == "__main__":
    unittest.main()
