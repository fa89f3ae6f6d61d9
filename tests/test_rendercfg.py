import subprocess
from pathlib import Path
from unittest import mock

import pytest

from copperrt.config import CuConfig, CuError, Node
from copperrt.rendercfg import main, render_dot, render_svg

CONFIG_TEXT = """(
    tasks: [
        (id: "src", type: "pkg::Source"),
        (id: "dst", type: "pkg::Sink"),
    ],
    cnx: [
        (src: "src", dst: "dst", msg: "pkg::Msg"),
    ],
)
"""


def make_config():
    config = CuConfig()
    config.add_node(Node("src", "pkg::Source"))
    config.add_node(Node("dst", "pkg::Sink"))
    config.connect(0, 1, "pkg::Msg")
    return config


def completed(stdout=b"<svg/>", returncode=0):
    return subprocess.CompletedProcess(["dot", "-Tsvg"], returncode, stdout=stdout)


def test_render_dot_matches_config_render():
    config = make_config()
    text = render_dot(config)
    assert text.startswith("digraph G {\n")
    assert text.endswith("}\n")
    assert "0 -> 1" in text
    assert "pkg::Msg/1/false" in text


def test_render_svg_pipes_dot_output():
    config = make_config()
    with mock.patch("copperrt.rendercfg.subprocess.run", return_value=completed()) as run:
        svg = render_svg(config)
    assert svg == b"<svg/>"
    args, kwargs = run.call_args
    assert args[0] == ["dot", "-Tsvg"]
    assert kwargs["input"] == render_dot(config).encode("utf-8")


def test_render_svg_failure_raises():
    with mock.patch("copperrt.rendercfg.subprocess.run", return_value=completed(b"", 1)):
        with pytest.raises(CuError):
            render_svg(make_config())


def test_render_svg_missing_dot_raises():
    with mock.patch("copperrt.rendercfg.subprocess.run", side_effect=FileNotFoundError("dot")):
        with pytest.raises(CuError):
            render_svg(make_config())


def test_main_writes_output_file(tmp_path, monkeypatch):
    cfg = tmp_path / "graph.ron"
    cfg.write_text(CONFIG_TEXT, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    with mock.patch("copperrt.rendercfg.subprocess.run", return_value=completed()):
        status = main([str(cfg)])
    assert status == 0
    assert (tmp_path / "output.svg").read_bytes() == b"<svg/>"


def test_main_open_uses_viewer_and_removes_temp_file(tmp_path, monkeypatch):
    cfg = tmp_path / "graph.ron"
    cfg.write_text(CONFIG_TEXT, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    seen = {}

    def fake_run(cmd, **kwargs):
        if cmd[0] == "dot":
            return completed()
        seen["cmd"] = cmd
        seen["content"] = Path(cmd[1]).read_bytes()
        return subprocess.CompletedProcess(cmd, 0)

    with mock.patch("copperrt.rendercfg.subprocess.run", side_effect=fake_run):
        status = main([str(cfg), "--open"])
    assert status == 0
    assert seen["cmd"][0] == "inkscape"
    assert seen["cmd"][1].endswith(".svg")
    assert seen["content"] == b"<svg/>"
    assert not Path(seen["cmd"][1]).exists()
    assert not (tmp_path / "output.svg").exists()


def test_main_dot_failure_returns_one(tmp_path, monkeypatch):
    cfg = tmp_path / "graph.ron"
    cfg.write_text(CONFIG_TEXT, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    with mock.patch("copperrt.rendercfg.subprocess.run", return_value=completed(b"", 2)):
        status = main([str(cfg)])
    assert status == 1
    assert not (tmp_path / "output.svg").exists()


def test_main_missing_config_returns_one(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with mock.patch("copperrt.rendercfg.subprocess.run") as run:
        status = main([str(tmp_path / "absent.ron")])
    assert status == 1
    assert run.call_count == 0