"""Operation-scoped signatures, nonce replay protection and principal checks."""

from dataclasses import replace

import pytest

from rwa_vault.auth import AuthProof, operation_message, sign_operation
from rwa_vault.errors import NotAuthorized, OracleNotAuthorized, VaultError


def test_operation_message_format(accounts):
    message = operation_message("v1", "deploy_to_strategy", 3, [accounts.strategy.address.lower(), 50])
    assert message == f"rwa-vault:v1:deploy_to_strategy:3:{accounts.strategy.address}|50"


def test_bytes_args_are_hex_encoded():
    assert operation_message("v1", "claim_physical", 0, [5, b"\xab\xcd"]).endswith(":5|0xabcd")


def test_missing_proof_rejected(live_vault, accounts):
    with pytest.raises(NotAuthorized):
        live_vault.deposit(accounts.alice.address, 100, proof=None)


def test_proof_for_another_principal_rejected(live_vault, accounts):
    proof = sign_operation(accounts.bob, live_vault.vault_id, "deposit", [100], 0)
    with pytest.raises(NotAuthorized):
        live_vault.deposit(accounts.alice.address, 100, proof=proof)


def test_forged_signer_field_rejected(live_vault, accounts):
    proof = sign_operation(accounts.bob, live_vault.vault_id, "deposit", [100], 0)
    forged = replace(proof, signer=accounts.alice.address)
    with pytest.raises(NotAuthorized):
        live_vault.deposit(accounts.alice.address, 100, proof=forged)


def test_signature_bound_to_arguments(live_vault, accounts):
    proof = sign_operation(accounts.alice, live_vault.vault_id, "deposit", [100], 0)
    with pytest.raises(NotAuthorized):
        live_vault.deposit(accounts.alice.address, 1_000_000, proof=proof)


def test_signature_bound_to_operation(funded_vault, accounts, clock, maturity):
    clock.set(maturity)
    nonce = funded_vault.get_nonce(accounts.alice.address)
    proof = sign_operation(accounts.alice, funded_vault.vault_id, "deposit", [10], nonce)
    with pytest.raises(NotAuthorized):
        funded_vault.redeem(accounts.alice.address, 10, proof=proof)


def test_signature_bound_to_vault(live_vault, accounts):
    proof = sign_operation(accounts.alice, "other-vault", "deposit", [100], 0)
    with pytest.raises(NotAuthorized):
        live_vault.deposit(accounts.alice.address, 100, proof=proof)


def test_garbage_signature_rejected(live_vault, accounts):
    proof = AuthProof(signer=accounts.alice.address, nonce=0, signature=b"\x00" * 65)
    with pytest.raises(NotAuthorized):
        live_vault.deposit(accounts.alice.address, 100, proof=proof)


def test_replayed_proof_rejected(live_vault, accounts):
    proof = sign_operation(accounts.alice, live_vault.vault_id, "deposit", [100], 0)
    live_vault.deposit(accounts.alice.address, 100, proof=proof)
    assert live_vault.get_nonce(accounts.alice.address) == 1

    with pytest.raises(NotAuthorized):
        live_vault.deposit(accounts.alice.address, 100, proof=proof)
    assert live_vault.get_user_balance(accounts.alice.address) == 100


def test_rejected_operation_keeps_nonce(live_vault, accounts, clock, maturity):
    clock.set(maturity)
    proof = sign_operation(accounts.alice, live_vault.vault_id, "deposit", [100], 0)
    with pytest.raises(VaultError):
        live_vault.deposit(accounts.alice.address, 100, proof=proof)
    assert live_vault.get_nonce(accounts.alice.address) == 0


def test_only_admin_manages_strategies(live_vault, act, accounts, strategy):
    with pytest.raises(NotAuthorized):
        act(accounts.bob, "add_strategy", strategy.address)
    with pytest.raises(NotAuthorized):
        act(accounts.oracle, "set_allocation_ratio", 1000, 9000)
    assert live_vault.get_strategies() == ()


def test_only_oracle_reports(live_vault, act, accounts):
    with pytest.raises(OracleNotAuthorized):
        act(accounts.admin, "report_rwa_value", 1)
    with pytest.raises(OracleNotAuthorized):
        live_vault.report_rwa_value(accounts.oracle.address, 1, proof=None)
    assert live_vault.get_rwa_value() == 0


def test_rotated_oracle_takes_over(live_vault, act, accounts):
    act(accounts.admin, "set_oracle", accounts.carol.address)
    with pytest.raises(OracleNotAuthorized):
        act(accounts.oracle, "report_rwa_value", 5)
    act(accounts.carol, "report_rwa_value", 5)
    assert live_vault.get_rwa_value() == 5
    assert live_vault.get_config().oracle == accounts.carol.address
