from toolshed.mq.example import main


def test_main_publishes_one_message(tmp_path, capsys):
    assert main(["--directory", str(tmp_path), "--wait", "0"]) == 0
    words = capsys.readouterr().out.split()
    assert words[:2] == ["publish", "0"]
    assert len(words) == 3
    assert len(words[2]) == 24 and words[2].isdigit()


def test_main_creates_topic_stores(tmp_path):
    assert main(["--directory", str(tmp_path), "--wait", "0"]) == 0
    assert (tmp_path / "metadata.db").exists()
    assert (tmp_path / "test.db").exists()
    assert (tmp_path / "testing.db").exists()