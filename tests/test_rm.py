from tinyunix.rm import main


def test_usage_without_arguments(capsys):
    assert main([]) == 1
    assert capsys.readouterr().err == "Usage: rm files...\n"


def test_removes_files(tmp_path):
    paths = [tmp_path / "a", tmp_path / "b"]
    for p in paths:
        p.write_text("x")
    assert main([str(p) for p in paths]) == 0
    assert [p.exists() for p in paths] == [False, False]


def test_stops_at_first_failure(tmp_path, capsys):
    missing = tmp_path / "missing"
    later = tmp_path / "later"
    later.write_text("x")
    assert main([str(missing), str(later)]) == 1
    assert capsys.readouterr().err == f"rm: {missing} failed to delete\n"
    assert later.exists()


def test_removes_empty_directory(tmp_path):
    d = tmp_path / "empty"
    d.mkdir()
    assert main([str(d)]) == 0
    assert not d.exists()


def test_refuses_non_empty_directory(tmp_path, capsys):
    d = tmp_path / "full"
    d.mkdir()
    (d / "f").write_text("x")
    main([str(d)])
    assert d.exists()
    assert "failed to delete" in capsys.readouterr().err