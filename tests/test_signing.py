"""
Tests for intent signing.
"""
from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings, strategies as st

from confkyc_sdk.exceptions import MissingIntentError
from confkyc_sdk.ledger.types import Intent, Offer, ProofState, ResourceRegistration, Transaction, TransactionRecipe
from confkyc_sdk.signer.local import LocalSigner
from confkyc_sdk.tx.assembler import TransactionAssembler
from confkyc_sdk.tx.signing import sign_intents, add_resource_generation_signature, RESOURCE_GENERATION_SEGMENT
from conftest import make_transaction, TEST_ADDRESS

SIGNATURE = b"\x11" * 65
OTHER_SIGNATURE = b"\x22" * 65


def fixed_sign_fn(signature=SIGNATURE):
    return MagicMock(side_effect=lambda payload: signature)


class TestSignIntents:
    """Tests for sign_intents."""

    def test_all_inputs_get_the_single_signature(self, test_signer):
        """One segment, three unsigned inputs: every slot holds the one signFn output."""
        tx = make_transaction(test_signer.public_key, 3)
        sign_fn = fixed_sign_fn()

        sign_intents(tx, sign_fn, ProofState.UNPROVEN)

        offer = tx.intents[1].guaranteed_offer
        assert offer.signatures == (SIGNATURE, SIGNATURE, SIGNATURE)
        assert offer.is_fully_signed
        sign_fn.assert_called_once()

    def test_sign_fn_called_once_per_segment_with_its_payload(self, test_signer):
        tx = make_transaction(test_signer.public_key, 2, segment_id=1)
        tx.intents[2] = make_transaction(test_signer.public_key, 1).intents[1]
        sign_fn = fixed_sign_fn()

        sign_intents(tx, sign_fn, ProofState.PROOF)

        payloads = [call.args[0] for call in sign_fn.call_args_list]
        assert len(payloads) == 2
        assert payloads[0] != payloads[1]
        assert sorted(payloads) == sorted([tx.intents[1].signature_data(1), tx.intents[2].signature_data(2)])

    def test_guaranteed_and_fallible_offers_signed_independently(self, test_signer):
        tx = make_transaction(test_signer.public_key, 2, fallible_inputs=3)

        sign_intents(tx, fixed_sign_fn(), ProofState.UNPROVEN)

        intent = tx.intents[1]
        assert intent.guaranteed_offer.signatures == (SIGNATURE,) * 2
        assert intent.fallible_offer.signatures == (SIGNATURE,) * 3

    def test_first_signer_wins(self, test_signer):
        tx = make_transaction(test_signer.public_key, 2)
        sign_intents(tx, fixed_sign_fn(SIGNATURE), ProofState.UNPROVEN)
        sign_intents(tx, fixed_sign_fn(OTHER_SIGNATURE), ProofState.UNPROVEN)

        assert tx.intents[1].guaranteed_offer.signatures == (SIGNATURE, SIGNATURE)

    def test_partially_signed_offer_keeps_existing_slots(self, test_signer):
        tx = make_transaction(test_signer.public_key, 3)
        intent = tx.intents[1]
        partial = Offer(
            inputs=intent.guaranteed_offer.inputs,
            outputs=intent.guaranteed_offer.outputs,
            signatures=(None, OTHER_SIGNATURE)
        )
        tx.intents[1] = Intent(guaranteed_offer=partial, actions=intent.actions, ttl=intent.ttl)

        sign_intents(tx, fixed_sign_fn(SIGNATURE), ProofState.UNPROVEN)

        assert tx.intents[1].guaranteed_offer.signatures == (SIGNATURE, OTHER_SIGNATURE, SIGNATURE)

    def test_empty_transaction_is_noop(self):
        tx = Transaction()
        sign_fn = fixed_sign_fn()
        sign_intents(tx, sign_fn, ProofState.PROOF)
        assert tx.intents == {}
        sign_fn.assert_not_called()

    def test_zero_input_offer_gets_empty_signatures(self):
        tx = Transaction(intents={1: Intent(guaranteed_offer=Offer(), fallible_offer=Offer())})
        sign_intents(tx, fixed_sign_fn(), ProofState.UNPROVEN)
        assert tx.intents[1].guaranteed_offer.signatures == ()
        assert tx.intents[1].fallible_offer.signatures == ()

    def test_intent_without_offers(self):
        tx = Transaction(intents={3: Intent(actions=b"deploy")})
        sign_intents(tx, fixed_sign_fn(), ProofState.PROOF)
        assert tx.intents[3].guaranteed_offer is None
        assert tx.intents[3].proof_state == ProofState.PROOF

    def test_target_proof_state_is_applied(self, test_signer):
        tx = make_transaction(test_signer.public_key, 1)
        assert tx.intents[1].proof_state == ProofState.UNPROVEN
        sign_intents(tx, fixed_sign_fn(), ProofState.PRE_PROOF)
        assert tx.intents[1].proof_state == ProofState.PRE_PROOF

    def test_real_signatures_recover_to_signer(self, test_signer):
        tx = make_transaction(test_signer.public_key, 2)
        sign_intents(tx, test_signer.sign_data, ProofState.UNPROVEN)

        intent = tx.intents[1]
        for signature in intent.guaranteed_offer.signatures:
            assert len(signature) == 65
            assert LocalSigner.recover(intent.signature_data(1), signature) == test_signer.address


class TestSignatureData:
    """Tests for the signing payload."""

    def test_retag_preserves_payload(self, test_signer):
        intent = make_transaction(test_signer.public_key, 2).intents[1]
        for state in ProofState:
            retagged = intent.with_proof_state(state)
            assert retagged.proof_state == state
            assert retagged.serialize() == intent.serialize()
            assert retagged.signature_data(1) == intent.signature_data(1)

    def test_payload_excludes_signatures(self, test_signer):
        tx = make_transaction(test_signer.public_key, 2)
        before = tx.intents[1].signature_data(1)
        sign_intents(tx, fixed_sign_fn(), ProofState.UNPROVEN)
        assert tx.intents[1].signature_data(1) == before

    def test_payload_depends_on_segment(self, test_signer):
        intent = make_transaction(test_signer.public_key, 1).intents[1]
        assert intent.signature_data(1) != intent.signature_data(2)

    @settings(max_examples=30, deadline=None)
    @given(
        n_inputs=st.integers(min_value=0, max_value=6),
        segment_id=st.integers(min_value=0, max_value=65535),
        state=st.sampled_from(list(ProofState))
    )
    def test_signature_count_matches_inputs(self, n_inputs, segment_id, state):
        owner = bytes.fromhex("02" + "11" * 32)
        tx = make_transaction(owner, n_inputs, segment_id=segment_id)
        payload = tx.intents[segment_id].signature_data(segment_id)

        sign_intents(tx, fixed_sign_fn(), state)

        signed = tx.intents[segment_id]
        assert len(signed.guaranteed_offer.signatures) == n_inputs
        assert signed.signature_data(segment_id) == payload
        assert signed.proof_state == state


class TestRecipeSigning:
    """Tests for signing base and balancing transactions of a recipe."""

    @pytest.mark.asyncio
    async def test_base_and_balancing_tags(self, test_signer):
        base = make_transaction(test_signer.public_key, 1)
        balancing = make_transaction(test_signer.public_key, 2)
        transport = MagicMock()

        async def balance(tx, keys, ttl):
            return TransactionRecipe(base_transaction=tx, balancing_transaction=balancing)
        transport.balance = balance

        assembler = TransactionAssembler(transport)
        recipe = await assembler.balance(base, keys=MagicMock(), ttl=MagicMock())
        assembler.sign(recipe, fixed_sign_fn(), base_state=ProofState.PROOF)

        base_intent = recipe.base_transaction.intents[1]
        balancing_intent = recipe.balancing_transaction.intents[1]
        assert base_intent.proof_state == ProofState.PROOF
        assert balancing_intent.proof_state == ProofState.PRE_PROOF
        assert base_intent.guaranteed_offer.signatures == (SIGNATURE,)
        assert balancing_intent.guaranteed_offer.signatures == (SIGNATURE, SIGNATURE)


class TestResourceGenerationSignature:
    """Tests for add_resource_generation_signature."""

    def _registration_tx(self, owner, n_inputs=2):
        tx = make_transaction(owner, n_inputs, segment_id=RESOURCE_GENERATION_SEGMENT)
        intent = tx.intents[RESOURCE_GENERATION_SEGMENT]
        tx.intents[RESOURCE_GENERATION_SEGMENT] = Intent(
            guaranteed_offer=intent.guaranteed_offer,
            ttl=intent.ttl,
            resource_registration=ResourceRegistration(
                owner_public_key=owner, receiver_address=TEST_ADDRESS, valid_from=1, valid_until=2
            )
        )
        return tx

    def test_signature_fills_registration_and_inputs(self, test_signer):
        tx = self._registration_tx(test_signer.public_key)
        signed = add_resource_generation_signature(tx, SIGNATURE)

        intent = signed.intents[RESOURCE_GENERATION_SEGMENT]
        assert intent.resource_registration.signature == SIGNATURE
        assert intent.guaranteed_offer.signatures == (SIGNATURE, SIGNATURE)
        # the input transaction is untouched
        assert tx.intents[RESOURCE_GENERATION_SEGMENT].resource_registration.signature is None

    def test_missing_segment(self, test_signer):
        tx = make_transaction(test_signer.public_key, 1, segment_id=2)
        with pytest.raises(MissingIntentError) as excinfo:
            add_resource_generation_signature(tx, SIGNATURE)
        assert excinfo.value.segment_id == RESOURCE_GENERATION_SEGMENT

    def test_missing_registration(self, test_signer):
        tx = make_transaction(test_signer.public_key, 1, segment_id=RESOURCE_GENERATION_SEGMENT)
        with pytest.raises(MissingIntentError):
            add_resource_generation_signature(tx, SIGNATURE)
