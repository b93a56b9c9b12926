"""
Unit tests for transfer extraction.

Tests follow the Given/When/Then pattern for clarity.
"""

from conftest import ALICE, BOB, OWNER, make_transfer

from rugscan.lib.models import Delta, TransactionDetail
from rugscan.lib.solana_rpc import SYSTEM_PROGRAM_ID
from rugscan.lib.transfers import extract_deltas, is_simple_transfer


class TestExtractDeltas:
    """Tests for extract_deltas."""

    def test_outgoing_transfer_is_counterparty_gain(self):
        """
        Given a transfer of 2 SOL from the owner to Alice
        When extracting deltas for the owner
        Then Alice should have a single positive delta of 2 SOL
        """
        # Given
        detail = make_transfer("sig1", OWNER, ALICE, 2_000_000_000)

        # When
        deltas = extract_deltas(detail, OWNER)

        # Then
        assert deltas == [Delta(counterparty=ALICE, amount=2_000_000_000, signature="sig1")]

    def test_incoming_transfer_is_counterparty_loss(self):
        """
        Given a transfer of 1 SOL from Alice to the owner
        When extracting deltas for the owner
        Then Alice's delta should be negative, including the fee she paid
        """
        # Given
        detail = make_transfer("sig2", ALICE, OWNER, 1_000_000_000, fee=5000)

        # When
        deltas = extract_deltas(detail, OWNER)

        # Then
        assert deltas == [Delta(counterparty=ALICE, amount=-1_000_005_000, signature="sig2")]

    def test_returns_none_for_failed_transaction(self):
        """
        Given a transaction whose error flag is set
        When extracting deltas
        Then None should be returned regardless of balances
        """
        # Given
        detail = make_transfer(
            "sig3", OWNER, ALICE, 2_000_000_000, err={"InstructionError": [0, "Custom"]}
        )

        # When / Then
        assert extract_deltas(detail, OWNER) is None

    def test_returns_none_for_missing_transaction(self):
        """
        Given no transaction detail
        When extracting deltas
        Then None should be returned
        """
        assert extract_deltas(None, OWNER) is None

    def test_returns_none_for_transaction_without_metadata(self):
        """
        Given a transaction fetched without metadata
        When extracting deltas
        Then None should be returned
        """
        # Given
        detail = TransactionDetail(
            signature="sig4",
            account_keys=(OWNER, ALICE, SYSTEM_PROGRAM_ID),
            pre_balances=(),
            post_balances=(),
            has_meta=False,
        )

        # When / Then
        assert extract_deltas(detail, OWNER) is None

    def test_skips_accounts_with_unchanged_balance(self):
        """
        Given a simple transfer where the recipient's balance did not change
        When extracting deltas
        Then no delta should be produced for it
        """
        # Given
        detail = TransactionDetail(
            signature="sig5",
            account_keys=(OWNER, ALICE, SYSTEM_PROGRAM_ID),
            pre_balances=(100, 50, 1),
            post_balances=(95, 50, 1),
        )

        # When
        deltas = extract_deltas(detail, OWNER)

        # Then
        assert deltas == []

    def test_never_reports_the_owner(self):
        """
        Given a transaction where only the owner's balance changed
        When extracting deltas
        Then the result should be empty
        """
        # Given
        detail = TransactionDetail(
            signature="sig6",
            account_keys=(OWNER, ALICE, SYSTEM_PROGRAM_ID),
            pre_balances=(100, 50, 1),
            post_balances=(90, 50, 1),
        )

        # When / Then
        assert extract_deltas(detail, OWNER) == []

    def test_returns_none_for_non_transfer_shape(self):
        """
        Given a transaction touching more accounts than a simple transfer
        When extracting deltas with the simple-transfer guard enabled
        Then the transaction should be skipped
        """
        # Given
        detail = TransactionDetail(
            signature="sig7",
            account_keys=(OWNER, ALICE, BOB, SYSTEM_PROGRAM_ID),
            pre_balances=(100, 50, 20, 1),
            post_balances=(60, 70, 40, 1),
        )

        # When / Then
        assert extract_deltas(detail, OWNER) is None

    def test_considers_all_accounts_when_guard_disabled(self):
        """
        Given a transaction touching several counterparties
        When extracting deltas with simple_transfers_only disabled
        Then every changed counterparty should get a delta
        """
        # Given
        detail = TransactionDetail(
            signature="sig8",
            account_keys=(OWNER, ALICE, BOB, SYSTEM_PROGRAM_ID),
            pre_balances=(100, 50, 20, 1),
            post_balances=(60, 70, 40, 1),
        )

        # When
        deltas = extract_deltas(detail, OWNER, simple_transfers_only=False)

        # Then
        assert deltas == [
            Delta(counterparty=ALICE, amount=20, signature="sig8"),
            Delta(counterparty=BOB, amount=20, signature="sig8"),
        ]

    def test_returns_none_when_balances_are_shorter_than_keys(self):
        """
        Given a transaction whose balance arrays do not cover every account
        When extracting deltas
        Then the transaction should be skipped
        """
        # Given
        detail = TransactionDetail(
            signature="sig9",
            account_keys=(OWNER, ALICE, SYSTEM_PROGRAM_ID),
            pre_balances=(100, 50),
            post_balances=(90, 60),
        )

        # When / Then
        assert extract_deltas(detail, OWNER) is None


class TestIsSimpleTransfer:
    """Tests for the structural transfer guard."""

    def test_accepts_payer_recipient_system_program(self):
        detail = make_transfer("sig", OWNER, ALICE, 1)
        assert is_simple_transfer(detail)

    def test_rejects_three_accounts_without_system_program(self):
        """
        Given three accounts where the third is not the System Program
        When checking the transfer shape
        Then it should be rejected
        """
        # Given
        detail = TransactionDetail(
            signature="sig",
            account_keys=(OWNER, ALICE, BOB),
            pre_balances=(1, 1, 1),
            post_balances=(0, 2, 1),
        )

        # When / Then
        assert not is_simple_transfer(detail)
