"""
Tests for the connection check script helpers
"""

from check_connection import check_mappings_file
from desired_state_adapter import DesiredStateAdapter


def test_missing_mappings_file_fails(tmp_path):
    desired = DesiredStateAdapter()
    desired.mappings_file = str(tmp_path / "missing.txt")

    assert check_mappings_file(desired) is False


def test_malformed_mappings_file_fails(tmp_path):
    path = tmp_path / "mappings.txt"
    path.write_text("mapping|idp1|developers|Admin\n", encoding="utf-8")
    desired = DesiredStateAdapter()
    desired.mappings_file = str(path)

    assert check_mappings_file(desired) is False


def test_unset_mappings_file_fails(monkeypatch):
    monkeypatch.delenv("SAML_GROUP_MAPPINGS_FILE", raising=False)

    assert check_mappings_file(DesiredStateAdapter()) is False


def test_valid_mappings_file_passes(tmp_path):
    path = tmp_path / "mappings.txt"
    path.write_text("mapping|idp1|developers|global|Admin\nmapping|idp2|ops|p1|Reader\n", encoding="utf-8")
    desired = DesiredStateAdapter()
    desired.mappings_file = str(path)

    assert check_mappings_file(desired) is True
    assert desired.saml_idp_ids == {"idp1", "idp2"}
