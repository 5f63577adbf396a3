"""Tests for the command line entry point."""
from unittest.mock import patch

import pytest

from kvocab.__main__ import build_parser, format_diff, main, read_word_file
from kvocab.models.quiz_models import EditOp


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("kvocab.__main__.setup_logging"):
        yield


@pytest.fixture
def word_file(tmp_path):
    path = tmp_path / "words.tsv"
    path.write_text(
        "가다\tgo, to go\t학교에 가요.\n"
        "\n"
        "오다\tcome\n"
        "broken line\n",
        encoding="utf-8",
    )
    return path


def test_read_word_file_skips_incomplete_lines(word_file):
    items = read_word_file(word_file)

    assert [item.korean for item in items] == ["가다", "오다"]
    assert items[0].example == "학교에 가요."
    assert items[1].example is None


def test_format_diff():
    diff = [
        EditOp("equal", "c", "c"),
        EditOp("substitute", "o", "a"),
        EditOp("insert", None, "r"),
        EditOp("delete", "s", None),
    ]

    assert format_diff(diff) == "c[a](r)-s-"


def test_parser_rejects_unknown_mode():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["quiz", "--owner", "o1", "--mode", "klingon"])


def test_upload_then_quiz(word_file, owner_id, capsys):
    assert main(["upload", str(word_file), "--owner", owner_id, "--name", "verbs"]) == 0
    assert "Uploaded 2 words" in capsys.readouterr().out

    with patch("builtins.input", side_effect=[":flip", ":quit"]):
        assert main(["quiz", "--owner", owner_id, "--window", "2"]) == 0

    out = capsys.readouterr().out
    assert "Commands:" in out
    assert "0/0 answered without peeking" in out


def test_quiz_without_words(owner_id, capsys):
    assert main(["quiz", "--owner", owner_id]) == 1
    assert "No words to practise" in capsys.readouterr().out


def test_correct_answer_advances(word_file, owner_id, capsys):
    main(["upload", str(word_file), "--owner", owner_id])
    answers = iter(["가다", "오다"])

    def answer(prompt):
        return next(answers, ":quit")

    with patch("builtins.input", side_effect=answer):
        main(["quiz", "--owner", owner_id, "--mode", "english-to-korean"])

    out = capsys.readouterr().out
    assert "Correct" in out or "Answer:" in out


@patch("kvocab.services.pronunciation_service.gTTS")
def test_say_prints_audio_path(mock_gtts, capsys):
    mock_gtts.return_value.save.side_effect = lambda path: open(path, "wb").close()

    assert main(["say", "사과"]) == 0
    assert capsys.readouterr().out.strip().endswith("사과.mp3")


if __name__ == "__main__":
    pytest.main([__file__])
