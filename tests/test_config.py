"""Tests for targets file loading."""

from __future__ import annotations

import importlib.util
import json

import pytest
import responses
import yaml

from gitimages.config import Target, load_schema, load_targets
from gitimages.errors import ConfigurationError

TARGETS = {
    "targets": [
        {
            "name": "go-demo",
            "repository": "https://github.com/bigkevmcd/go-demo",
            "branch": "master",
            "image": "bigkevmcd/go-demo",
        },
        {
            "name": "image-updater",
            "repository": "https://github.com/gitops-tools/image-updater",
            "branch": "main",
            "image": "bigkevmcd/image-updater",
            "strategy": "prefix",
            "prefix": "sha-",
        },
    ]
}


class TestLoadTargets:
    """Test loading local targets files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text(yaml.dump(TARGETS), encoding="utf-8")

        targets = load_targets(path)
        assert targets == [
            Target(
                name="go-demo",
                repository="https://github.com/bigkevmcd/go-demo",
                image="bigkevmcd/go-demo",
                branch="master",
            ),
            Target(
                name="image-updater",
                repository="https://github.com/gitops-tools/image-updater",
                image="bigkevmcd/image-updater",
                branch="main",
                strategy="prefix",
                prefix="sha-",
            ),
        ]

    def test_json(self, tmp_path):
        path = tmp_path / "targets.json"
        path.write_text(json.dumps(TARGETS), encoding="utf-8")
        assert [t.name for t in load_targets(str(path))] == ["go-demo", "image-updater"]

    def test_defaults(self, tmp_path):
        path = tmp_path / "targets.yml"
        path.write_text(
            "targets:\n  - name: a\n    repository: ./repo\n    image: org/app\n",
            encoding="utf-8",
        )
        (target,) = load_targets(path)
        assert target.strategy == "label"
        assert target.branch is None
        assert target.setting("label") is None

    def test_setting(self):
        target = Target(name="a", repository="r", image="i", strategy="prefix", prefix="")
        assert target.setting("prefix") == ""
        assert target.setting("label") is None
        assert target.setting("unknown") is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read targets file"):
            load_targets(tmp_path / "missing.yaml")

    def test_unparseable(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text("targets: [", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Cannot parse targets file"):
            load_targets(path)

    @pytest.mark.parametrize(
        "document, message",
        [
            ({}, "'targets' is a required property"),
            ({"targets": []}, "(at targets)"),
            ({"targets": [{"name": "a", "repository": "r"}]}, "'image' is a required property"),
            (
                {"targets": [{"name": "a", "repository": "r", "image": "i", "strategy": "regex"}]},
                "is not one of",
            ),
            (
                {"targets": [{"name": "a", "repository": "r", "image": "i", "extra": 1}]},
                "Additional properties are not allowed",
            ),
        ],
    )
    def test_schema_violations(self, tmp_path, document, message):
        path = tmp_path / "targets.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid targets file") as excinfo:
            load_targets(path)
        assert message in str(excinfo.value)

    def test_duplicate_names(self, tmp_path):
        entry = {"name": "a", "repository": "r", "image": "i"}
        path = tmp_path / "targets.json"
        path.write_text(json.dumps({"targets": [entry, entry]}), encoding="utf-8")
        with pytest.raises(ConfigurationError, match="duplicate target names a"):
            load_targets(path)


class TestRemoteTargets:
    """Test loading targets files over HTTP."""

    @responses.activate
    def test_remote_yaml(self):
        url = "https://example.com/targets.yaml"
        responses.add(responses.GET, url, body=yaml.dump(TARGETS), status=200)
        assert len(load_targets(url)) == 2

    @responses.activate
    def test_remote_json(self):
        url = "https://example.com/targets.json"
        responses.add(responses.GET, url, json=TARGETS, status=200)
        assert load_targets(url)[1].strategy == "prefix"

    @responses.activate
    def test_remote_error(self):
        url = "https://example.com/missing.yaml"
        responses.add(responses.GET, url, status=404)
        with pytest.raises(ConfigurationError, match="Failed to download targets from"):
            load_targets(url)


class TestLoadSchema:
    """Test loading the packaged JSON schemas."""

    @pytest.mark.parametrize("filename", ["targets.schema.json", "result.schema.json"])
    def test_loads_packaged_schema(self, filename):
        schema = load_schema(filename)
        assert schema["type"] == "object"
        assert "required" in schema

    def test_schemas_is_a_regular_package(self):
        # Editable installs cannot serve resources from a namespace package.
        spec = importlib.util.find_spec("gitimages.schemas")
        assert spec.origin is not None
        assert spec.origin.endswith("__init__.py")
