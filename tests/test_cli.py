from matchledger.cli import main


def _db(tmp_path) -> list[str]:
    return ["--db", str(tmp_path / "cli.sqlite")]


def test_add_list_and_finances(tmp_path, capsys):
    db = _db(tmp_path)
    assert main(db + ["add-player", "Alice", "aek"]) == 0
    assert main(db + ["add-player", "Diego", "Real"]) == 0
    capsys.readouterr()

    code = main(
        db
        + [
            "add",
            "3:1",
            "--date",
            "2024-05-04",
            "--scorer-a",
            "Alice=3",
            "--scorer-b",
            "Diego",
            "--player-of-match",
            "Alice",
        ]
    )
    added = capsys.readouterr().out
    assert code == 0
    assert "Match #1" in added
    assert "SdS Bonus" in added

    assert main(db + ["list"]) == 0
    listing = capsys.readouterr().out
    assert "2024-05-04" in listing
    assert "SdS: Alice" in listing

    assert main(db + ["finances"]) == 0
    finances = capsys.readouterr().out
    assert "1,050,000" in finances


def test_rejected_match_exits_with_two(tmp_path, capsys):
    code = main(_db(tmp_path) + ["add", "1:0", "--scorer-a", "Alice=2"])

    assert code == 2
    assert "Rejected" in capsys.readouterr().out


def test_bad_score_exits_with_two(tmp_path, capsys):
    assert main(_db(tmp_path) + ["add", "three-one"]) == 2


def test_delete_missing_match(tmp_path, capsys):
    assert main(_db(tmp_path) + ["delete", "12"]) == 1
    assert "not found" in capsys.readouterr().out
