"""End-to-end tests for the resopt-remap command."""

import json
import logging

import pytest
from loguru import logger

from resopt import cli
from resopt.dex_json import dump_stores, load_stores

from builders import (
    R_CLASS,
    array_decl,
    array_sizes,
    clinit_class,
    clinit_code,
    make_stores,
    payloads,
    styleable_class,
    umbrella_r_class,
)


@pytest.fixture(autouse=True)
def restore_logging():
    """cli.main reconfigures logging globally; undo it after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    logger.remove()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def workdir(tmp_path, remap_table):
    dump_stores(make_stores(umbrella_r_class(), styleable_class()), tmp_path / "classes.json")
    (tmp_path / "table.json").write_text(json.dumps(remap_table.to_dict()))
    (tmp_path / "config.json").write_text(json.dumps({"customized_r_classes": [R_CLASS]}))
    return tmp_path


def test_remaps_and_writes_output(workdir, capsys):
    status = cli.main([
        str(workdir / "classes.json"),
        "--remap-table", str(workdir / "table.json"),
        "--config", str(workdir / "config.json"),
        "--output", str(workdir / "out.json"),
        "--jobs", "2",
    ])
    assert status == 0

    r_class, styleable = load_stores(workdir / "out.json")[0].iter_classes()
    assert array_sizes(clinit_code(r_class)) == [4, 2, 1]
    assert payloads(clinit_code(styleable)) == [[0, 0x7f040001]]

    out = capsys.readouterr().out
    assert "TOTAL" in out
    assert R_CLASS in out


def test_overwrites_input_by_default(workdir):
    status = cli.main([
        str(workdir / "classes.json"),
        "-t", str(workdir / "table.json"),
        "--dump",
    ])
    assert status == 0
    styleable = list(load_stores(workdir / "classes.json")[0].iter_classes())[1]
    assert payloads(clinit_code(styleable)) == [[0, 0x7f040001]]


def test_failed_class_sets_exit_status(workdir):
    broken = clinit_class("Lcom/broken/R;", array_decl([0x7f010000], "Lcom/broken/R;.a:[I", declared=2))
    dump_stores(make_stores(broken), workdir / "broken.json")
    status = cli.main([str(workdir / "broken.json"), "-t", str(workdir / "table.json")])
    assert status == 1


def test_unknown_role_is_configuration_error(workdir):
    (workdir / "strict.json").write_text(json.dumps({
        "role_rules": [{"pattern": "\\$styleable;$", "role": "positional"}],
    }))
    before = (workdir / "classes.json").read_text()
    status = cli.main([
        str(workdir / "classes.json"),
        "-t", str(workdir / "table.json"),
        "-c", str(workdir / "strict.json"),
    ])
    assert status == 2
    assert (workdir / "classes.json").read_text() == before


def test_missing_table(workdir):
    status = cli.main([str(workdir / "classes.json"), "-t", str(workdir / "nope.json")])
    assert status == 2
