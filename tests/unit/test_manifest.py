"""
Tests for Addon Manifests.

This test suite covers:
1. Descriptor construction from valid manifests
2. Structural validation of malformed manifests
3. Constraint and config schema parsing at discovery time
4. Hook capability check
5. JSON manifest files
"""

import json
import tempfile
from pathlib import Path

import pytest

from addonkit.addon.errors import ManifestError
from addonkit.addon.hooks import Addon
from addonkit.addon.manifest import (
    AddonDescriptor,
    RawManifest,
    parse_manifest,
    read_manifest_file,
)


class TestParseManifest:
    """Test turning raw manifests into descriptors."""

    def test_parse_full_manifest(self):
        """Should parse every known field."""
        descriptor = parse_manifest(
            RawManifest(
                data={
                    "id": "reviews",
                    "name": "Product Reviews",
                    "version": "0.3.0",
                    "dependencies": {"catalog": "^1.0", "customers": ">=2.1"},
                    "description": "Customer reviews",
                    "author": "Shop Team",
                    "config": {"per_page": {"type": "int", "default": 10, "min": 1}},
                }
            )
        )

        assert descriptor.id == "reviews"
        assert descriptor.name == "Product Reviews"
        assert descriptor.version == "0.3.0"
        assert list(descriptor.dependencies) == ["catalog", "customers"]
        assert descriptor.constraints["catalog"].operator == "^"
        assert descriptor.description == "Customer reviews"
        assert descriptor.author == "Shop Team"
        assert descriptor.config_schema["per_page"].default == 10
        assert isinstance(descriptor.addon, Addon)

    def test_parse_minimal_manifest(self):
        """Name defaults to id; optional fields default to empty."""
        descriptor = parse_manifest(RawManifest(data={"id": "A", "version": "1.0.0"}))

        assert descriptor.name == "A"
        assert len(descriptor.dependencies) == 0
        assert descriptor.description == ""
        assert descriptor.author == ""
        assert len(descriptor.config_schema) == 0

    def test_descriptor_is_immutable(self):
        """Descriptors and their dependency maps cannot be changed."""
        descriptor = parse_manifest(
            RawManifest(data={"id": "B", "version": "1.0", "dependencies": {"A": ">=1.0"}})
        )

        with pytest.raises(AttributeError):
            descriptor.version = "2.0"
        with pytest.raises(TypeError):
            descriptor.dependencies["C"] = "1.0"

    def test_custom_addon_is_kept(self):
        class Shop(Addon):
            pass

        addon = Shop()
        descriptor = parse_manifest(RawManifest(data={"id": "shop", "version": "1.0"}, addon=addon))
        assert descriptor.addon is addon
        assert descriptor.depends_on("x") is False


class TestManifestValidation:
    """Test rejection of malformed manifests."""

    @pytest.mark.parametrize(
        "data",
        [
            ["not", "a", "table"],
            {"version": "1.0.0"},
            {"id": "A"},
            {"id": "", "version": "1.0.0"},
            {"id": "has space", "version": "1.0.0"},
            {"id": 5, "version": "1.0.0"},
            {"id": "A", "version": 1},
            {"id": "A", "version": "one"},
            {"id": "A", "version": "1.0", "name": 3},
            {"id": "A", "version": "1.0", "dependencies": ["B"]},
            {"id": "A", "version": "1.0", "dependencies": {"B": 1}},
            {"id": "A", "version": "1.0", "dependencies": {"B": "~1.0"}},
            {"id": "A", "version": "1.0", "config": {"x": {"type": "complex", "default": 1}}},
            {"id": "A", "version": "1.0", "config": {"x": {"type": "int", "default": "1"}}},
        ],
    )
    def test_malformed_manifest_rejected(self, data):
        """Each malformed manifest raises ManifestError."""
        with pytest.raises(ManifestError):
            parse_manifest(RawManifest(data=data))

    def test_incomplete_hook_implementation_rejected(self):
        """An object missing lifecycle hooks fails the capability check."""

        class Partial:
            def install(self):
                pass

        with pytest.raises(ManifestError, match="does not implement hooks"):
            parse_manifest(RawManifest(data={"id": "A", "version": "1.0"}, addon=Partial()))

    def test_error_names_the_addon(self):
        with pytest.raises(ManifestError) as exc_info:
            parse_manifest(RawManifest(data={"id": "A", "version": "1.0", "dependencies": {"B": "?"}}))
        assert exc_info.value.addon_id == "A"


class TestManifestFile:
    """Test reading JSON manifest files."""

    def test_read_manifest_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "addon.json"
            with open(path, "w") as f:
                json.dump({"id": "A", "version": "1.0.0"}, f)

            assert read_manifest_file(path) == {"id": "A", "version": "1.0.0"}

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ManifestError, match="not found"):
                read_manifest_file(Path(tmpdir) / "addon.json")

    def test_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "addon.json"
            path.write_text("{not json")
            with pytest.raises(ManifestError, match="parse"):
                read_manifest_file(path)

    def test_non_object_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "addon.json"
            path.write_text("[1, 2]")
            with pytest.raises(ManifestError):
                read_manifest_file(path)


def test_descriptor_equality_ignores_hooks():
    """Two descriptors with the same metadata compare equal."""
    first = AddonDescriptor(id="A", name="A", version="1.0", addon=Addon())
    second = AddonDescriptor(id="A", name="A", version="1.0", addon=Addon())
    assert first == second
