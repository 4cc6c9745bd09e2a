"""
Transaction assembly.

The assembler drives a transaction through balance, sign, finalize and submit,
checking that each recipe moves through those stages in order. Structural
checks run before finalization so that a malformed recipe never reaches the
transport.
"""
import logging
import weakref
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from ..exceptions import FinalizationError, InsufficientFundsError, MissingIntentError
from ..keys import BalancingKeys
from ..ledger.types import (
    Coin, Spend, Output, Offer, Intent, ProofState, Transaction, TransactionRecipe, FinalizedTransaction
)
from ..models import SubmitResult, TransferOutput
from ..signer import SignFn
from ..signer.local import address_from_public_key
from ..wallet.state import WalletState
from .signing import sign_intents, add_resource_generation_signature, RESOURCE_GENERATION_SEGMENT

logger = logging.getLogger(__name__)

# Segment id used for transfers built by this wallet
TRANSFER_SEGMENT = 1


class AssemblyStage(str, Enum):
    DRAFT = "draft"
    BALANCED = "balanced"
    SIGNED = "signed"
    FINALIZED = "finalized"
    SUBMITTED = "submitted"


def select_coins(coins: Sequence[Coin], required: int) -> Tuple[List[Coin], int]:
    """
    Pick coins largest first until they cover required.

    Returns:
        The selected coins and their total value

    Raises:
        InsufficientFundsError: If all coins together are not enough
    """
    selected: List[Coin] = []
    total = 0
    for coin in sorted(coins, key=lambda c: c.value, reverse=True):
        if total >= required:
            break
        selected.append(coin)
        total += coin.value

    if total < required:
        raise InsufficientFundsError(
            f"Insufficient funds: {required} required, {total} available",
            required=required,
            available=total
        )
    return selected, total


def validate_recipe(recipe: TransactionRecipe) -> None:
    """
    Check that a signed recipe can be finalized.

    Raises:
        FinalizationError: If an offer has a missing or extra signature, a
            resource registration is unsigned, or the intents of one
            transaction carry different proof states
    """
    for label, transaction in zip(("base", "balancing"), recipe.transactions()):
        states = {intent.proof_state for intent in transaction.intents.values()}
        if len(states) > 1:
            raise FinalizationError(
                f"The {label} transaction mixes proof states: "
                + ", ".join(sorted(s.value for s in states))
            )

        for segment_id, offer in transaction.offers():
            if len(offer.signatures) != len(offer.inputs):
                raise FinalizationError(
                    f"Segment {segment_id} of the {label} transaction has {len(offer.inputs)} inputs "
                    f"but {len(offer.signatures)} signatures"
                )
            if not offer.is_fully_signed:
                raise FinalizationError(
                    f"Segment {segment_id} of the {label} transaction has unsigned inputs"
                )

        for segment_id, intent in transaction.intents.items():
            registration = intent.resource_registration
            if registration is not None and not registration.signature:
                raise FinalizationError(
                    f"Resource registration in segment {segment_id} of the {label} transaction is unsigned"
                )


class TransactionAssembler:
    """
    Balances, signs, finalizes and submits transactions over a transport.

    One assembler may handle many transactions; the stage of each recipe is
    tracked until it is submitted.
    """

    def __init__(self, transport, logger: Optional[logging.Logger] = None):
        """
        Initialize the assembler

        Args:
            transport: LedgerTransport used for balancing, finalization and submission
            logger: Optional logger instance
        """
        self.transport = transport
        self.logger = logger or logging.getLogger(__name__)
        self._stages: Dict[int, Tuple[weakref.ref, AssemblyStage]] = {}

    def stage(self, recipe: TransactionRecipe) -> AssemblyStage:
        """Current stage of recipe; DRAFT if the assembler has not seen it."""
        entry = self._stages.get(id(recipe))
        if entry is None or entry[0]() is not recipe:
            return AssemblyStage.DRAFT
        return entry[1]

    def _advance(self, recipe: TransactionRecipe, allowed: Sequence[AssemblyStage], target: AssemblyStage) -> None:
        current = self.stage(recipe)
        if current not in allowed:
            raise FinalizationError(
                f"Cannot move a {current.value} transaction to {target.value}"
            )

    def _set(self, recipe: TransactionRecipe, stage: AssemblyStage) -> None:
        key = id(recipe)
        entry = self._stages.get(key)
        if entry is not None and entry[0]() is recipe:
            self._stages[key] = (entry[0], stage)
            return

        stages = self._stages

        def forget(ref: weakref.ref) -> None:
            # Drop the entry once the recipe is garbage collected
            current = stages.get(key)
            if current is not None and current[0] is ref:
                del stages[key]

        self._stages[key] = (weakref.ref(recipe, forget), stage)

    def _discard(self, recipe: TransactionRecipe) -> None:
        entry = self._stages.get(id(recipe))
        if entry is not None and entry[0]() is recipe:
            del self._stages[id(recipe)]

    def build_transfer(
        self,
        state: WalletState,
        outputs: Sequence[TransferOutput],
        public_key: bytes,
        network_id: str = "undeployed",
        ttl: Optional[int] = None
    ) -> Transaction:
        """
        Build an unsigned public pool transfer.

        Coins of public_key are selected largest first per token type, and
        any excess returns to the sender as a change output.

        Raises:
            ValueError: If no outputs are given
            InsufficientFundsError: If the coins do not cover the outputs
        """
        if not outputs:
            raise ValueError("A transfer needs at least one output")

        owned = [c for c in state.available_coins if c.owner == public_key]
        change_address = address_from_public_key(public_key)

        required: Dict[str, int] = {}
        for output in outputs:
            required[output.token_type] = required.get(output.token_type, 0) + output.amount

        inputs: List[Spend] = []
        new_outputs: List[Output] = [o.to_output() for o in outputs]
        for token_type, amount in required.items():
            candidates = [c for c in owned if c.token_type == token_type]
            selected, total = select_coins(candidates, amount)
            inputs.extend(Spend.from_coin(c) for c in selected)
            if total > amount:
                new_outputs.append(Output(value=total - amount, owner=change_address, token_type=token_type))

        offer = Offer(inputs=tuple(inputs), outputs=tuple(new_outputs))
        intent = Intent(guaranteed_offer=offer, ttl=ttl, proof_state=ProofState.UNPROVEN)
        self.logger.debug("Built transfer with %d inputs and %d outputs", len(inputs), len(new_outputs))
        return Transaction(intents={TRANSFER_SEGMENT: intent}, network_id=network_id)

    async def balance(self, transaction: Transaction, keys: BalancingKeys, ttl: datetime) -> TransactionRecipe:
        """Balance transaction through the transport."""
        recipe = await self.transport.balance(transaction, keys, ttl)
        self._set(recipe, AssemblyStage.BALANCED)
        return recipe

    def sign(
        self,
        recipe: TransactionRecipe,
        sign_fn: SignFn,
        base_state: ProofState = ProofState.PROOF
    ) -> TransactionRecipe:
        """
        Sign both transactions of a balanced recipe.

        The base transaction is tagged base_state: PROOF for balanced contract
        calls, UNPROVEN for wallet transfers. A balancing transaction is always
        signed as PRE_PROOF. Signing again with another key only fills slots
        that are still empty.

        Raises:
            FinalizationError: If the recipe was not balanced by this assembler
        """
        self._advance(recipe, (AssemblyStage.BALANCED, AssemblyStage.SIGNED), AssemblyStage.SIGNED)
        sign_intents(recipe.base_transaction, sign_fn, ProofState(base_state))
        if recipe.balancing_transaction is not None:
            sign_intents(recipe.balancing_transaction, sign_fn, ProofState.PRE_PROOF)
        self._set(recipe, AssemblyStage.SIGNED)
        return recipe

    def sign_resource_generation(self, transaction: Transaction, sign_fn: SignFn) -> TransactionRecipe:
        """
        Sign a resource-generation transaction with its single signature.

        Raises:
            MissingIntentError: If the transaction has no resource-generation segment
        """
        intent = transaction.intents.get(RESOURCE_GENERATION_SEGMENT)
        if intent is None:
            raise MissingIntentError(
                "Resource generation intent not found", segment_id=RESOURCE_GENERATION_SEGMENT
            )
        signature = sign_fn(intent.signature_data(RESOURCE_GENERATION_SEGMENT))
        recipe = TransactionRecipe(base_transaction=add_resource_generation_signature(transaction, signature))
        self._set(recipe, AssemblyStage.SIGNED)
        return recipe

    async def finalize(self, recipe: TransactionRecipe) -> FinalizedTransaction:
        """
        Validate a signed recipe and finalize it through the transport.

        A recipe that fails validation or finalization is forgotten and
        reads as DRAFT again; it has to be balanced anew.

        Raises:
            FinalizationError: If the recipe is not signed or not well formed
        """
        self._advance(recipe, (AssemblyStage.SIGNED,), AssemblyStage.FINALIZED)
        try:
            validate_recipe(recipe)
        except FinalizationError as e:
            self.logger.error(f"Refusing to finalize transaction: {e}")
            self._discard(recipe)
            raise

        try:
            finalized = await self.transport.finalize(recipe)
        except Exception:
            self._discard(recipe)
            raise

        if finalized.recipe is not recipe:
            self._discard(recipe)
        self._set(finalized.recipe, AssemblyStage.FINALIZED)
        return finalized

    async def submit(self, finalized: FinalizedTransaction) -> SubmitResult:
        """
        Submit a finalized transaction.

        The transaction stops being tracked whether or not submission succeeds.

        Raises:
            FinalizationError: If the transaction was not finalized by this assembler
        """
        self._advance(finalized.recipe, (AssemblyStage.FINALIZED,), AssemblyStage.SUBMITTED)
        try:
            result = await self.transport.submit(finalized)
        finally:
            self._discard(finalized.recipe)
        self.logger.info(f"Submitted transaction {result.transaction_id[:10]}…")
        return result
