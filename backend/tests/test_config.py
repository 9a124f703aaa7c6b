import dataclasses

import pytest

from backend.x402_gate.config import USDC_ASSETS, load_config
from backend.x402_gate.tiers import PriceTier, build_price_tiers, validate_tiers
from backend.x402_gate.verifiers import DefaultFacilitatorVerifier, FacilitatorVerifier, PermissiveVerifier, build_verifier


def test_missing_pay_to_address_fails(monkeypatch):
    monkeypatch.delenv("PAY_TO_ADDRESS", raising=False)
    monkeypatch.delenv("ADDRESS", raising=False)
    with pytest.raises(RuntimeError):
        load_config()


def test_legacy_address_env_is_accepted(monkeypatch):
    monkeypatch.delenv("PAY_TO_ADDRESS", raising=False)
    monkeypatch.setenv("ADDRESS", "0xLEGACY")
    assert load_config().pay_to_address == "0xLEGACY"


def test_defaults(monkeypatch):
    monkeypatch.delenv("FACILITATOR_URL", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("PUBLIC_BASE_URL", raising=False)
    monkeypatch.setenv("NETWORK", "base-sepolia")
    cfg = load_config()
    assert cfg.asset == USDC_ASSETS["base-sepolia"]
    assert cfg.facilitator_url == "https://x402.org/facilitator"
    assert cfg.port == 3000
    assert cfg.public_base_url == "http://localhost:3000"
    assert cfg.timeout_seconds == 60
    assert cfg.unavailable_status == 402


def test_bad_timeout_falls_back(monkeypatch):
    monkeypatch.setenv("PAYMENT_TIMEOUT_SECONDS", "soon")
    assert load_config().timeout_seconds == 60


def test_unknown_mode_fails(monkeypatch):
    monkeypatch.setenv("VERIFICATION_MODE", "trust-me")
    with pytest.raises(RuntimeError):
        load_config()


def test_facilitator_is_default_mode(monkeypatch):
    monkeypatch.delenv("VERIFICATION_MODE", raising=False)
    cfg = load_config()
    assert cfg.verification_mode == "facilitator"
    assert isinstance(build_verifier(cfg), FacilitatorVerifier)


def test_permissive_requires_explicit_flag(monkeypatch):
    monkeypatch.setenv("ALLOW_PERMISSIVE_VERIFIER", "false")
    cfg = load_config()
    assert cfg.verification_mode == "permissive"
    with pytest.raises(RuntimeError):
        build_verifier(cfg)
    assert isinstance(build_verifier(dataclasses.replace(cfg, allow_permissive=True)), PermissiveVerifier)


def test_permissive_refused_in_production(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    with pytest.raises(RuntimeError):
        build_verifier(load_config())


def test_tier_table_is_read_only_and_complete():
    tiers = build_price_tiers(load_config())
    assert [t.amount_required_atomic for t in tiers.values()] == [1000, 10000, 100000, 1000000]
    with pytest.raises(TypeError):
        tiers["/api/free"] = None  # type: ignore[index]


def test_duplicate_or_bad_tiers_rejected():
    cfg = load_config()
    with pytest.raises(ValueError):
        build_price_tiers(cfg, [("/api/a", 1, "$1", "a"), ("/api/a", 2, "$2", "b")])
    with pytest.raises(ValueError):
        build_price_tiers(cfg, [("/api/a", 0, "$0", "free?")])
    with pytest.raises(ValueError):
        validate_tiers([PriceTier("api/a", 1, "asset", "0xP", "base", 60, "no slash")])


def test_local_mode_delegates_to_sdk_default_facilitator(monkeypatch):
    monkeypatch.setenv("VERIFICATION_MODE", "local")
    monkeypatch.setenv("FACILITATOR_URL", "https://ignored.test")
    verifier = build_verifier(load_config())
    assert isinstance(verifier, DefaultFacilitatorVerifier)
    assert verifier.name == "local"
    assert verifier.facilitator_url == "https://x402.org/facilitator"


def test_in_process_chain_mode_is_refused_with_hint(monkeypatch):
    monkeypatch.setenv("VERIFICATION_MODE", "custom")
    with pytest.raises(RuntimeError, match="VERIFICATION_MODE=facilitator"):
        load_config()
