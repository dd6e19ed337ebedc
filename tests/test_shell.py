import pytest

from tinyunix.shell import (
    MAXARGS,
    WORD,
    BackCmd,
    ExecCmd,
    ListCmd,
    PipeCmd,
    RedirCmd,
    RedirMode,
    ShellSyntaxError,
    parse_command,
    tokenize,
)

WRITE = RedirMode.WRONLY | RedirMode.CREATE


def test_tokenize_symbols_and_words():
    tokens = tokenize("cat<in>>out|wc")
    assert [(t.kind, t.text) for t in tokens] == [
        (WORD, "cat"),
        ("<", "<"),
        (WORD, "in"),
        (">>", ">>"),
        (WORD, "out"),
        ("|", "|"),
        (WORD, "wc"),
    ]


def test_tokenize_skips_whitespace_and_stops_at_nul():
    tokens = tokenize(" \t echo\vx ;\0 ignored")
    assert [(t.kind, t.text) for t in tokens] == [(WORD, "echo"), (WORD, "x"), (";", ";")]
    assert tokens[0].start == 3


def test_simple_exec():
    assert parse_command("echo hello world\n") == ExecCmd(["echo", "hello", "world"])


def test_empty_line_is_empty_exec():
    assert parse_command("\n") == ExecCmd([])


def test_redirections_wrap_in_order():
    cmd = parse_command("cat < in > out")
    assert cmd == RedirCmd(
        RedirCmd(ExecCmd(["cat"]), "in", RedirMode.RDONLY, 0), "out", WRITE, 1
    )


def test_append_uses_write_mode():
    assert parse_command("echo x >> log") == RedirCmd(ExecCmd(["echo", "x"]), "log", WRITE, 1)


def test_redirection_before_command_name():
    assert parse_command("< in cat") == RedirCmd(ExecCmd(["cat"]), "in", RedirMode.RDONLY, 0)


def test_pipes_associate_right():
    assert parse_command("a | b | c") == PipeCmd(
        ExecCmd(["a"]), PipeCmd(ExecCmd(["b"]), ExecCmd(["c"]))
    )


def test_list_and_background():
    assert parse_command("a ; b &") == ListCmd(ExecCmd(["a"]), BackCmd(ExecCmd(["b"])))


def test_repeated_background():
    assert parse_command("a & &") == BackCmd(BackCmd(ExecCmd(["a"])))


def test_block_with_redirection():
    assert parse_command("(a ; b) > f") == RedirCmd(
        ListCmd(ExecCmd(["a"]), ExecCmd(["b"])), "f", WRITE, 1
    )


def test_max_args_minus_one_is_accepted():
    words = [f"w{n}" for n in range(MAXARGS - 1)]
    assert parse_command(" ".join(words)) == ExecCmd(words)


def test_too_many_args():
    words = [f"w{n}" for n in range(MAXARGS)]
    with pytest.raises(ShellSyntaxError, match="too many args"):
        parse_command(" ".join(words))


@pytest.mark.parametrize(
    "line, message",
    [
        ("a >", "missing file for redirection"),
        ("a < |", "missing file for redirection"),
        ("(a", "syntax - missing \\)"),
        ("a (", "syntax"),
    ],
)
def test_syntax_errors(line, message):
    with pytest.raises(ShellSyntaxError, match=message):
        parse_command(line)


def test_leftovers_reported():
    with pytest.raises(ShellSyntaxError) as info:
        parse_command("a ) b")
    assert str(info.value) == "leftovers: ) b"