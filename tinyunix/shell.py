"""Command-line parsing for the shell: tokens, and a tree of commands."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Union

MAXARGS = 10
WORD = "word"

_TOKEN_RE = re.compile(r"(>>|[<|>&;()])|([^ \t\r\n\v<|>&;()]+)")


class ShellSyntaxError(Exception):
    """A command line could not be parsed."""


class RedirMode(enum.IntFlag):
    """Open modes used for redirections."""

    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200


class Token(NamedTuple):
    """One lexical token: a symbol such as ``|`` or ``>>``, or a word."""

    kind: str
    text: str
    start: int


@dataclass
class ExecCmd:
    """Run a program with arguments; an empty ``argv`` does nothing."""

    argv: list[str] = field(default_factory=list)


@dataclass
class RedirCmd:
    """Run ``cmd`` with descriptor ``fd`` opened on ``file``."""

    cmd: "Command"
    file: str
    mode: RedirMode
    fd: int


@dataclass
class PipeCmd:
    """Connect the output of ``left`` to the input of ``right``."""

    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    """Run ``left``, wait for it, then run ``right``."""

    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    """Run ``cmd`` in the background."""

    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


def tokenize(line: str) -> list[Token]:
    """Split a command line into tokens; a NUL ends the line."""
    line = line.split("\0", 1)[0]
    return [
        Token(m.group(1) or WORD, m.group(0), m.start())
        for m in _TOKEN_RE.finditer(line)
    ]


class _Parser:
    def __init__(self, line: str) -> None:
        self.line = line.split("\0", 1)[0]
        self.tokens = tokenize(self.line)
        self.pos = 0

    def peek(self, *kinds: str) -> bool:
        return self.pos < len(self.tokens) and self.tokens[self.pos].kind in kinds

    def take(self) -> Optional[Token]:
        if self.pos >= len(self.tokens):
            return None
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def parse(self) -> Command:
        cmd = self.parse_line()
        if self.pos < len(self.tokens):
            rest = self.line[self.tokens[self.pos].start:]
            raise ShellSyntaxError(f"leftovers: {rest}")
        return cmd

    def parse_line(self) -> Command:
        cmd = self.parse_pipe()
        while self.peek("&"):
            self.take()
            cmd = BackCmd(cmd)
        if self.peek(";"):
            self.take()
            cmd = ListCmd(cmd, self.parse_line())
        return cmd

    def parse_pipe(self) -> Command:
        cmd = self.parse_exec()
        if self.peek("|"):
            self.take()
            cmd = PipeCmd(cmd, self.parse_pipe())
        return cmd

    def parse_redirs(self, cmd: Command) -> Command:
        while self.peek("<", ">", ">>"):
            op = self.take()
            target = self.take()
            if target is None or target.kind != WORD:
                raise ShellSyntaxError("missing file for redirection")
            if op.kind == "<":
                cmd = RedirCmd(cmd, target.text, RedirMode.RDONLY, 0)
            else:
                cmd = RedirCmd(cmd, target.text, RedirMode.WRONLY | RedirMode.CREATE, 1)
        return cmd

    def parse_block(self) -> Command:
        if not self.peek("("):
            raise ShellSyntaxError("parseblock")
        self.take()
        cmd = self.parse_line()
        if not self.peek(")"):
            raise ShellSyntaxError("syntax - missing )")
        self.take()
        return self.parse_redirs(cmd)

    def parse_exec(self) -> Command:
        if self.peek("("):
            return self.parse_block()
        cmd = ExecCmd()
        ret = self.parse_redirs(cmd)
        while not self.peek("|", ")", "&", ";"):
            token = self.take()
            if token is None:
                break
            if token.kind != WORD:
                raise ShellSyntaxError("syntax")
            cmd.argv.append(token.text)
            if len(cmd.argv) >= MAXARGS:
                raise ShellSyntaxError("too many args")
            ret = self.parse_redirs(ret)
        return ret


def parse_command(line: str) -> Command:
    """Parse one command line into a command tree."""
    return _Parser(line).parse()