import pytest

from conftest import HOST, TOKEN, FakeJoplinSession, entry_dict, photo_dict, write_export
from dayone_to_joplin import cli
from dayone_to_joplin.joplin_client import JoplinClient


@pytest.fixture
def fake_joplin(monkeypatch):
    session = FakeJoplinSession(tags=[{"id": "t-work", "title": "work"}])

    def make_client(host, token, timeout=30):
        return JoplinClient(host, token, timeout=timeout, session=session)

    monkeypatch.setattr(cli, "JoplinClient", make_client)
    return session


def _argv(journal_folder, tmp_path, *extra):
    return [
        "-host", HOST,
        "-journalFolder", str(journal_folder),
        "-token", TOKEN,
        "-notebook", "nb-7",
        "--log-file", str(tmp_path / "import.log"),
        *extra,
    ]


def test_go_style_flags_are_accepted():
    args = cli.build_arg_parser().parse_args(["-journalFolder", "/x", "-token", "t"])
    assert args.journal_folder == "/x"
    assert args.token == "t"
    assert args.host == "http://localhost:41184"
    assert args.notebook == "44538ac414c340af8eba12fef4066446"
    assert args.timeout == 30


def test_token_is_required():
    with pytest.raises(SystemExit):
        cli.build_arg_parser().parse_args(["-journalFolder", "/x"])


def test_successful_run_exits_zero(fake_joplin, journal_folder, tmp_path, capsys):
    write_export(
        journal_folder,
        [
            entry_dict(uuid="1", text="# One\n![](dayone-moment://P)", tags=["Work"], photos=[photo_dict("P")]),
            entry_dict(uuid="2", text="# Two\nbody", tags=["Family"]),
        ],
    )

    assert cli.run_cli(_argv(journal_folder, tmp_path)) == 0

    out = capsys.readouterr().out
    assert "Journal Entry: One" in out
    assert "Imported 2 of 2 entries" in out
    assert len(fake_joplin.notes) == 2
    assert {note["parent_id"] for note in fake_joplin.notes.values()} == {"nb-7"}
    assert [tag["title"] for tag in fake_joplin.tags] == ["work", "family"]


def test_failed_entry_exits_non_zero_but_imports_the_rest(fake_joplin, journal_folder, tmp_path, capsys):
    write_export(
        journal_folder,
        [entry_dict(uuid="bad", photos=[photo_dict("P")]), entry_dict(uuid="good")],
    )
    (journal_folder / "photos" / "pmd5.jpeg").unlink()

    assert cli.run_cli(_argv(journal_folder, tmp_path)) == 1

    out = capsys.readouterr().out
    assert "Imported 1 of 2 entries" in out
    assert "[warn] bad" in out
    assert len(fake_joplin.notes) == 1


def test_fail_fast_stops_at_first_error(fake_joplin, journal_folder, tmp_path, capsys):
    write_export(journal_folder, [entry_dict(uuid="a"), entry_dict(uuid="b")])
    fake_joplin.failures[("POST", "/notes")] = (500, {"error": "server"})

    assert cli.run_cli(_argv(journal_folder, tmp_path, "--fail-fast")) == 1

    assert "[error] remote error" in capsys.readouterr().out
    assert len(fake_joplin.calls_to("POST", "/notes")) == 1


def test_malformed_export_aborts_before_network(fake_joplin, journal_folder, tmp_path, capsys):
    (journal_folder / "AllEntries.json").write_text("[]", encoding="utf-8")

    assert cli.run_cli(_argv(journal_folder, tmp_path)) == 1

    assert "[error] decode error" in capsys.readouterr().out
    assert fake_joplin.calls == []


def test_missing_journal_folder_is_configuration_error(fake_joplin, tmp_path, capsys):
    assert cli.run_cli(_argv(tmp_path / "nowhere", tmp_path)) == 1
    assert "Journal folder does not exist" in capsys.readouterr().out


def test_each_run_writes_to_its_own_log_file(fake_joplin, journal_folder, tmp_path):
    write_export(journal_folder, [entry_dict(uuid="1")])
    first = tmp_path / "one.log"
    second = tmp_path / "two.log"

    assert cli.run_cli(_argv(journal_folder, tmp_path)[:-2] + ["--log-file", str(first)]) == 0
    assert cli.run_cli(_argv(journal_folder, tmp_path)[:-2] + ["--log-file", str(second)]) == 0

    assert "Imported 1 of 1 entries" in first.read_text(encoding="utf-8")
    assert "Imported 1 of 1 entries" in second.read_text(encoding="utf-8")


def test_debug_log_records_payload_and_response(fake_joplin, journal_folder, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    write_export(journal_folder, [entry_dict(uuid="dbg", text="# Debugged\nbody")])

    assert cli.run_cli(_argv(journal_folder, tmp_path, "--debug-log")) == 0

    note_id = next(iter(fake_joplin.notes))
    debug_text = (tmp_path / "import.debug.log").read_text(encoding="utf-8")
    assert '"title": "2023-03-05 Debugged"' in debug_text
    assert note_id in debug_text
