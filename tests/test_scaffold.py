"""Tests for scaffold.py -- ``panforge init`` file generation."""

import pytest
import yaml

from panforge.errors import PanforgeError
from panforge.layers import load_document_config, read_front_matter
from panforge.scaffold import CONFIG_TEMPLATE, create_file, render_scaffold, run_init


class TestRenderScaffold:
    def test_default_formats(self):
        config = yaml.safe_load(read_front_matter(render_scaffold([])))
        assert config["title"] == "Untitled Document"
        assert config["outputs"] == ["html", "pdf"]
        assert config["output"]["html"] == {"standalone": True, "toc": True}

    def test_selected_formats(self):
        config = yaml.safe_load(read_front_matter(render_scaffold(["epub", "docx"])))
        assert config["outputs"] == ["epub", "docx"]
        assert config["output"] == {"epub": {"to": "epub3"}, "docx": {}}

    def test_unknown_format_gets_empty_entry(self):
        config = yaml.safe_load(read_front_matter(render_scaffold(["rst"])))
        assert config["output"] == {"rst": {}}


class TestConfigTemplate:
    def test_is_valid_yaml(self):
        config = yaml.safe_load(CONFIG_TEMPLATE)
        assert config["filename-template"] == "{title}_{date}.{ext}"
        assert config["overwrite"] is False
        assert config["output"]["epub"] == {"to": "epub3"}


class TestRunInit:
    def test_writes_config(self, tmp_path):
        path = run_init(directory=tmp_path)
        assert path == tmp_path / ".panforge.yaml"
        assert path.read_text() == CONFIG_TEMPLATE

    def test_writes_markdown(self, tmp_path):
        path = run_init(markdown=True, formats=["pdf"], directory=tmp_path)
        assert path.name == "input.md"
        assert load_document_config(path)["outputs"] == ["pdf"]

    def test_existing_file_refused(self, tmp_path):
        (tmp_path / "input.md").write_text("mine")
        with pytest.raises(PanforgeError, match="already exists"):
            run_init(markdown=True, directory=tmp_path)
        assert (tmp_path / "input.md").read_text() == "mine"

    def test_force(self, tmp_path):
        target = tmp_path / "x.yaml"
        target.write_text("old")
        create_file(target, "new: 1\n", force=True)
        assert target.read_text() == "new: 1\n"
