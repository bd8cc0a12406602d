"""Tests for distbuild.metadata.index."""

from unittest.mock import patch

import pytest

from distbuild.errors import DuplicatePackageError
from distbuild.metadata import index
from distbuild.metadata.index import enumerate_buildable_units


class TestEnumerateBuildableUnits:
    """Tests for enumerate_buildable_units."""

    def test_units_without_control_are_omitted(self, src_dir, make_unit):
        make_unit("a")
        make_unit("docs", control=False)
        (src_dir / "README").write_text("not a unit")

        metadata = enumerate_buildable_units(src_dir)

        assert list(metadata.control_files) == ["a"]
        assert metadata.unparseable == []

    def test_binary_packages_map_to_unit(self, src_dir, make_unit):
        make_unit("vyatta-cfg", binaries={"vyatta-cfg": None, "libvyatta-cfg1": None})

        metadata = enumerate_buildable_units(src_dir)

        assert metadata.package_owners == {
            "vyatta-cfg": "vyatta-cfg",
            "libvyatta-cfg1": "vyatta-cfg",
        }

    def test_provides_are_indexed(self, src_dir, make_unit):
        make_unit("b", binaries={"libb1": "virtual-b, other-b (= 1.0)"})

        metadata = enumerate_buildable_units(src_dir)

        assert metadata.owner_of("virtual-b") == "b"
        assert metadata.owner_of("other-b") == "b"
        assert metadata.owner_of(" libb1 ") == "b"

    def test_bad_provides_is_skipped(self, src_dir, make_unit):
        make_unit("b", binaries={"libb1": "${python3:Provides}", "libb2": "b-api"})

        metadata = enumerate_buildable_units(src_dir)

        assert "b" in metadata.control_files
        assert metadata.owner_of("libb1") == "b"
        assert metadata.owner_of("b-api") == "b"

    def test_unparseable_recorded_in_discovery_order(self, src_dir, make_unit):
        make_unit("c-broken", raw="Package: nope\n")
        make_unit("a")
        make_unit("b-broken", build_depends=["foo (>= 1"])

        metadata = enumerate_buildable_units(src_dir)

        assert metadata.unparseable == ["b-broken", "c-broken"]
        assert list(metadata.control_files) == ["a"]
        assert "nope" not in metadata.package_owners

    def test_own_provides_is_not_a_duplicate(self, src_dir, make_unit):
        make_unit("a", binaries={"a": "a"})
        assert enumerate_buildable_units(src_dir).owner_of("a") == "a"

    def test_duplicate_ownership_rejected(self, src_dir, make_unit):
        make_unit("mta-one", binaries={"mta-one": "mail-transport-agent"})
        make_unit("mta-two", binaries={"mta-two": "mail-transport-agent"})

        with pytest.raises(DuplicatePackageError) as excinfo:
            enumerate_buildable_units(src_dir)

        assert excinfo.value.package == "mail-transport-agent"
        assert excinfo.value.owners == ["mta-one", "mta-two"]

    def test_unreadable_control_skips_unit(self, src_dir, make_unit):
        make_unit("a")
        make_unit("locked")
        real_read = index.read_control

        def read(path):
            if path.parent.parent.name == "locked":
                raise PermissionError(13, "Permission denied", str(path))
            return real_read(path)

        with patch("distbuild.metadata.index.read_control", side_effect=read):
            metadata = enumerate_buildable_units(src_dir)

        assert list(metadata.control_files) == ["a"]
        assert metadata.unparseable == []

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            enumerate_buildable_units(tmp_path / "missing")
