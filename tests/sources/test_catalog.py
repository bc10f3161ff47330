import os
import re
import stat
from pathlib import Path

import pytest
import yaml

from setmeup.errors import ConfigError
from setmeup.sources.catalog import SourceCatalog, parse_engine_context, parse_source
from setmeup.sources.models import DEFAULT_PLAYBOOK_MATCH, EngineContext, Source


def _executable(tmp_path: Path, name: str = "ansible-playbook") -> Path:
    exe = tmp_path / name
    exe.write_text("#!/bin/sh\nexit 0\n")
    exe.chmod(exe.stat().st_mode | stat.S_IXUSR)
    return exe


def _expect_error(document, substring: str):
    with pytest.raises(ConfigError) as exc:
        SourceCatalog.parse(document)
    assert substring in str(exc.value)
    return exc.value


def test_minimal_source_defaults(tmp_path: Path):
    catalog = SourceCatalog.parse({"foo": {"path": str(tmp_path)}})

    assert len(catalog) == 1
    src = catalog[0]
    assert src.name == "foo"
    assert src.path == tmp_path
    assert src.recurse is False
    assert src.playbook_match.search("test.yml")
    assert src.playbook_match.search("test.yaml")
    assert not src.playbook_match.search("test.txt")
    assert src.pre_provision is None
    assert src.engine == EngineContext()
    assert src.engine.program == "ansible-playbook"


def test_entries_keep_document_order(tmp_path: Path):
    doc = {name: {"path": str(tmp_path)} for name in ("zeta", "alpha", "mid")}
    assert SourceCatalog.parse(doc).names() == ["zeta", "alpha", "mid"]


@pytest.mark.parametrize("document", [None, {}, [], "sources"])
def test_missing_or_empty_sources(document):
    _expect_error(document, "missing or empty sources")


def test_non_string_source_name(tmp_path: Path):
    _expect_error({42: {"path": str(tmp_path)}}, "expected string as source name")


def test_missing_path():
    err = _expect_error({"foo": {"recurse": True}}, "missing path")
    assert "source 'foo'" in str(err)


def test_entry_that_is_not_a_mapping_has_no_path():
    _expect_error({"foo": None}, "missing path")


@pytest.mark.parametrize("value", [42, None, ["/tmp"], True])
def test_non_string_path(value):
    _expect_error({"foo": {"path": value}}, "expected string for the path")


def test_path_not_a_directory(tmp_path: Path):
    f = tmp_path / "file.txt"
    f.write_text("x")
    _expect_error({"foo": {"path": str(f)}}, f"failed to read at {f}")


def test_path_does_not_exist(tmp_path: Path):
    _expect_error({"foo": {"path": str(tmp_path / "nope")}}, "failed to read at")


@pytest.mark.skipif(os.geteuid() == 0, reason="root can read anything")
def test_path_unreadable(tmp_path: Path):
    d = tmp_path / "locked"
    d.mkdir()
    d.chmod(0)
    try:
        _expect_error({"foo": {"path": str(d)}}, "failed to read at")
    finally:
        d.chmod(0o700)


def test_recurse_true(tmp_path: Path):
    catalog = SourceCatalog.parse({"foo": {"path": str(tmp_path), "recurse": True}})
    assert catalog[0].recurse is True


@pytest.mark.parametrize("value", ["yes please", 1, None])
def test_non_boolean_recurse(tmp_path: Path, value):
    _expect_error({"foo": {"path": str(tmp_path), "recurse": value}}, "expected boolean for the recurse parameter")


def test_custom_playbook_match(tmp_path: Path):
    catalog = SourceCatalog.parse({"foo": {"path": str(tmp_path), "playbook_match": r"^.*site\.yml$"}})
    assert catalog[0].playbook_match.pattern == r"^.*site\.yml$"


def test_non_string_playbook_match(tmp_path: Path):
    _expect_error({"foo": {"path": str(tmp_path), "playbook_match": 3}}, "expected string for the playbook_match parameter")


def test_invalid_playbook_match(tmp_path: Path):
    err = _expect_error({"foo": {"path": str(tmp_path), "playbook_match": "(unclosed"}}, "playbook_match")
    assert isinstance(err.__cause__, re.error)


def test_pre_provision(tmp_path: Path):
    catalog = SourceCatalog.parse({"foo": {"path": str(tmp_path), "pre_provision": "/bin/true"}})
    assert catalog[0].pre_provision == "/bin/true"


def test_non_string_pre_provision(tmp_path: Path):
    _expect_error({"foo": {"path": str(tmp_path), "pre_provision": ["git", "pull"]}}, "expected string for the pre_provision parameter")


def test_path_is_validated_before_other_fields():
    # both path and recurse are wrong: path is reported
    _expect_error({"foo": {"path": 1, "recurse": "x"}}, "expected string for the path")


def test_one_bad_entry_fails_whole_catalog(tmp_path: Path):
    doc = {
        "good": {"path": str(tmp_path)},
        "bad": {"path": str(tmp_path), "recurse": "no thanks"},
    }
    err = _expect_error(doc, "expected boolean")
    assert "source 'bad'" in str(err)


# ------------------------- engine_context -------------------------


def test_engine_path_ok(tmp_path: Path):
    exe = _executable(tmp_path)
    src = parse_source("foo", {"path": str(tmp_path), "engine_context": {"path": str(exe)}})
    assert src.engine.path == exe
    assert src.engine.program == str(exe)


def test_legacy_ansible_playbook_key(tmp_path: Path):
    exe = _executable(tmp_path)
    src = parse_source("foo", {"path": str(tmp_path), "ansible_playbook": {"path": str(exe)}})
    assert src.engine.path == exe


def test_engine_non_string_path(tmp_path: Path):
    _expect_error({"foo": {"path": str(tmp_path), "engine_context": {"path": 12}}}, "expected string for the ansible-playbook path")


def test_engine_non_existent_path(tmp_path: Path):
    _expect_error(
        {"foo": {"path": str(tmp_path), "engine_context": {"path": str(tmp_path / "missing")}}},
        "no executable ansible-playbook at",
    )


@pytest.mark.skipif(os.geteuid() == 0, reason="root bypasses execute permission checks")
def test_engine_non_executable_path(tmp_path: Path):
    f = tmp_path / "ansible-playbook"
    f.write_text("not executable")
    f.chmod(0o644)
    _expect_error({"foo": {"path": str(tmp_path), "engine_context": {"path": str(f)}}}, "no executable ansible-playbook at")


def test_engine_directory_is_not_executable_file(tmp_path: Path):
    _expect_error(
        {"foo": {"path": str(tmp_path), "engine_context": {"path": str(tmp_path)}}},
        "no executable ansible-playbook at",
    )


def test_engine_block_must_be_mapping(tmp_path: Path):
    _expect_error({"foo": {"path": str(tmp_path), "engine_context": "ansible-playbook"}}, "expected mapping for the engine_context")


def test_engine_env_ok():
    ctx = parse_engine_context({"env": [{"name": "FOO", "value": "bar"}, {"name": "BAZ", "value": ""}]})
    assert ctx.env == {"FOO": "bar", "BAZ": ""}
    assert ctx.path is None


def test_engine_env_non_list():
    with pytest.raises(ConfigError, match="expected list for the ansible-playbook environment"):
        parse_engine_context({"env": {"FOO": "bar"}})


@pytest.mark.parametrize(
    "pair, message",
    [
        ({"value": "bar"}, "missing name property"),
        ({"name": 1, "value": "bar"}, "non-string name property"),
        ({"name": "FOO"}, "missing value property"),
        ({"name": "FOO", "value": 2}, "non-string value property"),
        ("FOO=bar", "missing name property"),
    ],
)
def test_engine_env_pair_errors(pair, message):
    with pytest.raises(ConfigError, match=message):
        parse_engine_context({"env": [pair]})


# ------------------------- round trip -------------------------


def test_round_trip_of_validated_fields(tmp_path: Path):
    exe = _executable(tmp_path)
    doc = {
        "plain": {"path": str(tmp_path)},
        "full": {
            "path": str(tmp_path),
            "recurse": True,
            "playbook_match": r"site\.ya?ml$",
            "pre_provision": "git pull --ff-only",
            "engine_context": {
                "path": str(exe),
                "env": [{"name": "ANSIBLE_ROLES_PATH", "value": "roles"}],
            },
        },
    }
    first = SourceCatalog.parse(doc)
    second = SourceCatalog.parse(yaml.safe_load(yaml.safe_dump(first.to_dict())))

    assert second.names() == first.names()
    for a, b in zip(first, second):
        assert (a.path, a.recurse, a.pre_provision) == (b.path, b.recurse, b.pre_provision)
        assert a.playbook_match.pattern == b.playbook_match.pattern
        assert a.engine == b.engine


def test_source_str_is_its_name(tmp_path: Path):
    assert str(Source(name="infra", path=tmp_path)) == "infra"
    assert Source(name="infra", path=tmp_path).playbook_match.pattern == DEFAULT_PLAYBOOK_MATCH
