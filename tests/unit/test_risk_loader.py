"""Tests for risk profile YAML loading."""

from pathlib import Path

import pytest
from conftest import make_raw

from netwatch.risk.classifier import RiskClassifier
from netwatch.risk.loader import load_profile, load_profile_from_string
from netwatch.risk.models import (
    DEFAULT_KNOWN_NETWORKS,
    DEFAULT_MALWARE_PORTS,
    NetworkTag,
    RiskLevel,
    RiskProfile,
)


def test_load_profile_extends_defaults(rules_path: Path):
    profile = load_profile(rules_path)
    assert 9001 in profile.malware_ports
    assert DEFAULT_MALWARE_PORTS <= profile.malware_ports
    assert 5432 in profile.admin_ports
    assert profile.high_port_threshold == 20000
    assert profile.suspicious_processes == frozenset({"xmrig", "nc"})
    assert profile.flagged_networks[-1] == NetworkTag("203.0.113.0/24", "Test-net C2")
    assert profile.known_networks[: len(DEFAULT_KNOWN_NETWORKS)] == DEFAULT_KNOWN_NETWORKS


def test_load_profile_replaces_defaults(fixtures_dir: Path):
    profile = load_profile(fixtures_dir / "rules_replace.yaml")
    assert profile.malware_ports == frozenset({4444})
    assert profile.high_risk_ports == frozenset()
    assert profile.admin_ports == frozenset()
    assert profile.flagged_networks == ()
    assert profile.known_networks == ()


def test_loaded_profile_drives_classifier(rules_path: Path):
    classifier = RiskClassifier.from_profile(load_profile(rules_path))

    risk, reasons = classifier.classify(make_raw("203.0.113.50", 443))
    assert risk == RiskLevel.HIGH
    assert reasons == ("Connection to flagged network (Test-net C2)",)

    risk, reasons = classifier.classify(make_raw("198.51.100.7", 5432))
    assert risk == RiskLevel.MEDIUM
    assert reasons == (
        "Connection to administrative port 5432",
        "Known CDN (Internal mirror)",
    )

    # Threshold raised to 20000
    risk, _ = classifier.classify(make_raw(remote_port=15000))
    assert risk == RiskLevel.LOW


def test_empty_document_gives_defaults():
    assert load_profile_from_string("") == RiskProfile()
    assert load_profile_from_string("# nothing here\n") == RiskProfile()


def test_bare_cidr_strings_are_accepted():
    profile = load_profile_from_string(
        """
extends_defaults: false
flagged_networks:
  - 192.0.2.0/24
"""
    )
    assert profile.flagged_networks == (NetworkTag("192.0.2.0/24", "192.0.2.0/24"),)


def test_single_port_scalar():
    profile = load_profile_from_string("extends_defaults: false\nadmin_ports: 2222\n")
    assert profile.admin_ports == frozenset({2222})


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "malware_ports: [0]\n",
        "malware_ports: [70000]\n",
        "admin_ports: nope\n",
        "flagged_networks:\n  - cidr: 999.1.1.0/24\n",
        "known_networks: 10.0.0.0/8\n",
        "flagged_networks:\n  - label: no range\n",
        "known_networks:\n  - 42\n",
    ],
)
def test_invalid_profiles_raise(text: str):
    with pytest.raises(ValueError):
        load_profile_from_string(text)


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_profile(tmp_path / "absent.yaml")
