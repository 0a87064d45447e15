from unittest.mock import patch

import pytest

from blobjack.base.config import CoreConfig
from blobjack.base.retry import RetryPolicy
from blobjack.cli import _build_parser, main
from blobjack.memory.store import MemoryBackend, MemoryObjectStore
from blobjack.orchestrator import Orchestrator


@pytest.fixture
def store():
    return MemoryObjectStore(backend=MemoryBackend())


@pytest.fixture
def run(store, capsys):
    """Run the CLI against an in-process store and return (stdout, stderr)."""
    config = CoreConfig(session_grace_period=0, retry=RetryPolicy(base_delay=0, max_delay=0, jitter=0))

    def _run(*argv):
        with patch("blobjack.cli._build_orchestrator", return_value=Orchestrator.for_store(store, config)):
            main(list(argv))
        return capsys.readouterr()

    return _run


class TestParser:
    def test_defaults(self):
        ns = _build_parser().parse_args(["list"])
        assert ns.provider == "azure"
        assert ns.container_name == "default-container-name"
        assert ns.blob_prefix == ""
        assert ns.max_concurrency == 8

    def test_container_name_before_command(self):
        ns = _build_parser().parse_args(["--container-name", "box", "read", "--blob-key", "k"])
        assert ns.container_name == "box"

    def test_container_name_after_command(self):
        ns = _build_parser().parse_args(["write", "--container-name", "box", "--blob-key", "k"])
        assert ns.container_name == "box"

    def test_command_required(self):
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args([])
        assert exc_info.value.code == 2

    def test_unknown_provider(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["-p", "dropbox", "list"])


class TestContainerCommands:
    def test_create(self, run):
        out = run("--container-name", "box", "create-container").out
        assert out == 'Creating a container named "box"\nSuccessfully created container "box"\n'

    def test_create_existing(self, run):
        run("--container-name", "box", "create-container")
        out = run("--container-name", "box", "create-container").out
        assert 'Container "box" already exists' in out

    def test_delete(self, run):
        run("--container-name", "box", "create-container")
        out = run("--container-name", "box", "delete-container").out
        assert out == 'Deleting a container named "box"\nSuccessfully deleted container "box"\n'

    def test_delete_missing(self, run):
        out = run("--container-name", "box", "delete-container").out
        assert 'Container "box" does not exist' in out


class TestBlobCommands:
    @pytest.fixture(autouse=True)
    def container(self, store):
        store.create_container("default-container-name")

    def test_write_and_read(self, run):
        out = run("write", "--blob-key", "a/b.txt", "--blob-value", "hello").out
        assert out == 'Successfully written "hello" to "a/b.txt"\n'
        out = run("read", "--blob-key", "a/b.txt").out
        assert out == (
            "Content-Type: text/plain; charset=utf-8\n"
            "\n"
            "hello\n"
            'Successfully read from "a/b.txt"\n'
        )

    def test_list(self, run):
        for key in ("a/b", "a/c", "a/b/d", "x"):
            run("write", "--blob-key", key, "--blob-value", "v")
        out = run("list").out
        assert out.splitlines() == [
            "a/",
            "  a/b",
            "  a/b/",
            "    a/b/d",
            "  a/c",
            "x",
            'Successfully listed from ""',
        ]

    def test_list_prefix_prints_relative_keys(self, run):
        for key in ("dir/a", "dir/sub/b", "other"):
            run("write", "--blob-key", key, "--blob-value", "v")
        out = run("list", "--blob-prefix", "dir/").out
        assert out.splitlines() == [
            "a",
            "sub/",
            "  sub/b",
            'Successfully listed from "dir/"',
        ]

    @pytest.mark.parametrize("argv, flag", [
        (["write", "--blob-value", "v"], "blob-key"),
        (["write", "--blob-key", "k"], "blob-value"),
        (["read"], "blob-key"),
    ])
    def test_missing_flag(self, run, capsys, argv, flag):
        with pytest.raises(SystemExit) as exc_info:
            run(*argv)
        assert exc_info.value.code == 1
        assert f'flag "--{flag}" should be set' in capsys.readouterr().err

    def test_read_missing_blob(self, run, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run("read", "--blob-key", "nope")
        assert exc_info.value.code == 1
        assert capsys.readouterr().err.startswith("Error:")


class TestBuildOrchestrator:
    @pytest.fixture(autouse=True)
    def clean_backend(self):
        MemoryBackend.reset()
        yield
        MemoryBackend.reset()

    def test_memory_provider_end_to_end(self, capsys):
        base = ["-p", "memory", "-c", '{"account_id": "cli"}', "--container-name", "box"]
        main(base + ["create-container"])
        main(base + ["write", "--blob-key", "k", "--blob-value", "v"])
        main(base + ["read", "--blob-key", "k"])
        out = capsys.readouterr().out
        assert 'Successfully read from "k"' in out
        assert "\nv\n" in out

    def test_invalid_json(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-p", "memory", "-c", "{bad", "list"])
        assert exc_info.value.code == 1
        assert "Invalid --config JSON" in capsys.readouterr().err

    @pytest.mark.parametrize("raw", ["[]", "3", "\"acct\"", "null"])
    def test_config_must_be_object(self, capsys, raw):
        with pytest.raises(SystemExit) as exc_info:
            main(["-p", "memory", "-c", raw, "list"])
        assert exc_info.value.code == 1
        assert capsys.readouterr().err == "Error: --config must be a JSON object\n"

    def test_invalid_provider_config(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-p", "memory", "-c", '{"nope": 1}', "list"])
        assert exc_info.value.code == 1
        assert capsys.readouterr().err.startswith("Error:")
