"""
Staking pool service (imperative shell).

`StakingPool` owns the single `PoolState` and the collaborator handles. Every
mutating call runs inside `_transaction()`:
- the pool state, the event buffer and every `Checkpointable` collaborator are
  snapshotted first,
- the post-state is checked against the invariant registry,
- on any exception all of them are restored and the exception re-raised,
- on success the state is persisted to the durable store.

The arithmetic lives in the functional core (`fuse_staking.core`); this module
only sequences it against the registry, the claim-token ledger and custody.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, Mapping

from ..core.distribution import collect, distribute
from ..core.epoch import advance_epoch
from ..core.errors import (
    AlreadyInitializedError,
    AuthorizationError,
    CapacityError,
    ConfigurationError,
    NotInitializedError,
    PoolInvariantError,
    PreconditionError,
    TransferError,
)
from ..core.fixed_point import MAX_PROTOCOL_FEE_BPS, tokens_for_value, value_for_tokens
from ..core.flags import transition
from ..core.interfaces import AssetCustody, Checkpointable, ClaimTokenLedger, ValidatorRegistry
from ..core.invariants import GUARD_INVARIANT, capacity_violations, check_all
from ..core.rewards import apply_reward_update, compute_reward_update
from ..core.state import initial_state
from ..core.types import ZERO_ADDRESS, Address, Event, PoolEvent, PoolState
from ..state.canonical import canonical_address
from ..state.storage import EternalStorage, load_pool_state, pool_state_digest, save_pool_state
from .config import PoolConfig

logger = logging.getLogger(__name__)


class StakingPool:
    """Pooled-staking accounting engine bound to one registry/token/custody set."""

    def __init__(
        self,
        *,
        address: Address,
        registry: ValidatorRegistry,
        token: ClaimTokenLedger,
        custody: AssetCustody,
        store: EternalStorage | None = None,
    ):
        self.address = canonical_address(address, name="pool address")
        self._registry = registry
        self._token = token
        self._custody = custody
        self._store = store if store is not None else EternalStorage()
        self._state: PoolState | None = load_pool_state(self._store)
        self._events: list[PoolEvent] = []
        self._depth = 0

    @classmethod
    def restore(
        cls,
        store: EternalStorage,
        *,
        address: Address,
        registry: ValidatorRegistry,
        token: ClaimTokenLedger,
        custody: AssetCustody,
    ) -> StakingPool:
        """Rebuild a service over an already-initialized store."""
        pool = cls(address=address, registry=registry, token=token, custody=custody, store=store)
        if not pool.initialized:
            raise NotInitializedError("store holds no initialized pool")
        logger.info("pool %s restored at epoch %d", pool.address, pool.epoch)
        return pool

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, op: str) -> Iterator[None]:
        saved_state = self._state
        saved_events = len(self._events)
        checkpoints = [
            (c, c.checkpoint())
            for c in (self._registry, self._token, self._custody, self._store)
            if isinstance(c, Checkpointable)
        ]
        self._depth += 1
        try:
            yield
            if self._state is not None:
                violations = check_all(self._state) + capacity_violations(self._state, self._registry)
                if self._depth > 1:
                    # An enclosing withdrawal still holds the guard.
                    violations = [v for v in violations if v != GUARD_INVARIANT]
                if violations:
                    raise PoolInvariantError(violations)
        except Exception as exc:
            self._state = saved_state
            del self._events[saved_events:]
            for collaborator, token in reversed(checkpoints):
                collaborator.rollback(token)
            logger.warning("%s rolled back: %s", op, exc)
            raise
        finally:
            self._depth -= 1
        if self._state is not None:
            save_pool_state(self._store, self._state)

    def _require_state(self) -> PoolState:
        if self._state is None:
            raise NotInitializedError("pool is not initialized")
        return self._state

    def _require_owner(self, sender: Address) -> PoolState:
        state = self._require_state()
        if canonical_address(sender, name="sender") != state.owner:
            raise AuthorizationError("caller is not the owner")
        return state

    def _emit(self, event: Event, **data: int | str) -> None:
        self._events.append(PoolEvent(event=event, data=data))
        logger.debug("event %s %s", event.value, data)

    def _non_null_address(self, value: Address, name: str = "validator") -> Address:
        addr = canonical_address(value, name=name)
        if addr == ZERO_ADDRESS:
            raise PreconditionError(f"{name} must not be the null address")
        return addr

    def _max_system_stake(self, state: PoolState) -> int:
        return self._registry.max_stake_per_validator() * len(state.validators)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(
        self,
        sender: Address,
        *,
        initial_validator: Address,
        registry_address: Address,
        token_address: Address,
        treasury: Address,
        initial_timestamp: int,
        stake_limit: int,
        epoch_interval: int,
        protocol_fee_bps: int = 0,
    ) -> None:
        """One-shot setup; the caller becomes the owner."""
        with self._transaction("initialize"):
            if self._state is not None:
                raise AlreadyInitializedError("pool is already initialized")
            self._state = initial_state(
                owner=canonical_address(sender, name="sender"),
                initial_validator=self._non_null_address(initial_validator, "initial validator"),
                registry_ref=canonical_address(registry_address, name="registry"),
                token_ledger_ref=canonical_address(token_address, name="token"),
                treasury=canonical_address(treasury, name="treasury"),
                initial_timestamp=initial_timestamp,
                stake_limit=stake_limit,
                epoch_interval=epoch_interval,
                protocol_fee_bps=protocol_fee_bps,
            )
            self._emit(Event.INITIALIZED, owner=self._state.owner, validator=self._state.validators[0])
        logger.info("pool %s initialized by %s", self.address, self._state.owner)

    def initialize_from_config(self, sender: Address, config: PoolConfig) -> None:
        self.initialize(
            sender,
            initial_validator=config.initial_validator,
            registry_address=config.registry_address,
            token_address=config.token_address,
            treasury=config.treasury,
            initial_timestamp=config.initial_timestamp,
            stake_limit=config.stake_limit,
            epoch_interval=config.epoch_interval,
            protocol_fee_bps=config.protocol_fee_bps,
        )

    # ------------------------------------------------------------------
    # Accounting steps shared by the flows
    # ------------------------------------------------------------------

    def _tick_epoch(self, now: int) -> None:
        self._state, advance = advance_epoch(self._require_state(), now)
        if advance is not None:
            self._emit(Event.EPOCH_UPDATED, epoch=advance.epoch)
            logger.debug("epoch advanced by %d to %d", advance.increments, advance.epoch)

    def _realize_rewards(self, incoming_value: int) -> None:
        state = self._require_state()
        update = compute_reward_update(
            state,
            pool_balance=self._custody.balance(),
            incoming_value=incoming_value,
            total_supply=self._token.total_supply(),
        )
        if update is None:
            return
        self._state, _ = apply_reward_update(state, update, registry=self._registry, ledger=self._token)
        self._emit(
            Event.RATIO_UPDATED,
            realized=update.realized,
            fee=update.fee,
            price_ratio=update.new_ratio,
            fee_shares=update.fee_shares,
        )

    # ------------------------------------------------------------------
    # Deposit / withdrawal
    # ------------------------------------------------------------------

    def deposit(self, sender: Address, value: int, *, now: int) -> int:
        """Stake `value` base units; returns the claim tokens minted to `sender`."""
        sender = canonical_address(sender, name="sender")
        with self._transaction("deposit"):
            state = self._require_state()
            if value <= 0:
                raise PreconditionError(f"deposit value must be positive: {value}")
            self._custody.receive(sender, value)

            if state.system_total_staked == 0:
                self._state, _ = distribute(state, value, self._registry)
                self._state = replace(self._state, system_total_staked=value)
            else:
                # Capacity and limit are judged on total staked before this
                # call realizes pending rewards.
                if state.system_total_staked + value > self._max_system_stake(state):
                    raise CapacityError("deposit exceeds aggregate validator capacity")
                if state.safeguard_enabled and state.is_over_limit:
                    raise PreconditionError("system stake limit exceeded; deposits are closed")
                if state.system_total_staked + value > state.system_stake_limit:
                    self._state = replace(state, over_limit=transition(state.over_limit, "breach"))
                self._tick_epoch(now)
                self._realize_rewards(incoming_value=value)
                self._state, _ = distribute(self._require_state(), value, self._registry)
                self._state = replace(self._state, system_total_staked=self._state.system_total_staked + value)

            minted = tokens_for_value(value, self._state.price_ratio)
            if not self._token.mint(sender, minted):
                raise TransferError(f"minting {minted} claim tokens failed")
            self._emit(Event.DEPOSITED, sender=sender, value=value, tokens=minted)
        logger.info("deposit %d from %s minted %d tokens", value, sender, minted)
        return minted

    def withdraw(self, sender: Address, amount: int) -> int:
        """Redeem `amount` claim tokens, draining validators from the cursor on."""
        return self._withdraw(sender, amount, validator_index=None)

    def withdraw_from(self, sender: Address, amount: int, validator_index: int) -> int:
        """Redeem `amount` claim tokens entirely from one named validator."""
        return self._withdraw(sender, amount, validator_index=validator_index)

    def _withdraw(self, sender: Address, amount: int, *, validator_index: int | None) -> int:
        sender = canonical_address(sender, name="sender")
        with self._transaction("withdraw"):
            state = self._require_state()
            self._state = replace(state, guard=transition(state.guard, "enter"))
            if validator_index is not None and state.is_paused:
                raise PreconditionError("pool is paused")
            if amount <= 0:
                raise PreconditionError(f"withdraw amount must be positive: {amount}")
            if not self._token.transfer_from(sender, self.address, amount):
                raise TransferError(f"claim-token transfer of {amount} from {sender} failed")

            self._realize_rewards(incoming_value=0)
            state = self._require_state()
            payout = value_for_tokens(amount, state.price_ratio)
            collect(state, payout, self._registry, self.address, validator_index)
            if payout > state.system_total_staked:
                raise CapacityError(f"payout {payout} exceeds total staked {state.system_total_staked}")
            self._state = replace(state, system_total_staked=state.system_total_staked - payout)

            self._token.burn(amount)
            self._emit(Event.TOKENS_BURNED, sender=sender, amount=amount)
            if not self._custody.send(sender, payout):
                raise TransferError(f"payout of {payout} to {sender} failed")

            state = self._require_state()
            self._state = replace(state, guard=transition(state.guard, "exit"))
            self._emit(
                Event.WITHDRAWN,
                sender=sender,
                amount=amount,
                price_ratio=state.price_ratio,
                payout=payout,
            )
        logger.info("withdraw %d tokens by %s paid %d", amount, sender, payout)
        return payout

    # ------------------------------------------------------------------
    # Roster lifecycle
    # ------------------------------------------------------------------

    def _pull_all(self, validator: Address) -> int:
        held = self._registry.delegated_amount(self.address, validator)
        if held > 0:
            self._registry.withdraw(validator, held)
        return held

    def add_validator(self, sender: Address, validator: Address) -> None:
        with self._transaction("add_validator"):
            state = self._require_owner(sender)
            validator = self._non_null_address(validator)
            if validator in state.validators:
                raise PreconditionError(f"validator {validator} is already on the roster")
            self._state = replace(state, validators=state.validators + (validator,))
            self._emit(Event.VALIDATOR_ADDED, validator=validator)
        logger.info("validator %s added", validator)

    def remove_validator(self, sender: Address, validator: Address) -> None:
        """Swap-remove `validator` and re-place its stake on the rest of the roster."""
        with self._transaction("remove_validator"):
            state = self._require_owner(sender)
            validator = canonical_address(validator, name="validator")
            if validator not in state.validators:
                raise PreconditionError(f"validator {validator} is not on the roster")
            if len(state.validators) == 1:
                raise PreconditionError("cannot remove the last validator")

            idx = state.validators.index(validator)
            last = len(state.validators) - 1
            roster = list(state.validators)
            roster[idx] = roster[last]
            roster.pop()
            cursor = state.validator_index
            if cursor == last:
                cursor = idx
            if cursor >= len(roster):
                cursor = 0

            moved = self._pull_all(validator)
            self._state = replace(state, validators=tuple(roster), validator_index=cursor)
            self._state, _ = distribute(self._state, moved, self._registry)
            self._emit(Event.VALIDATOR_REMOVED, validator=validator, redelegated=moved)
        logger.info("validator %s removed, %d re-delegated", validator, moved)

    def replace_validator(self, sender: Address, old: Address, new: Address) -> None:
        """Swap `old` for `new` in place; the cursor moves to the replaced slot."""
        with self._transaction("replace_validator"):
            state = self._require_owner(sender)
            old = canonical_address(old, name="old validator")
            if old not in state.validators:
                raise PreconditionError(f"validator {old} is not on the roster")
            self._replace_at(state, state.validators.index(old), new, move_cursor=True)

    def replace_validator_at(self, sender: Address, index: int, new: Address) -> None:
        with self._transaction("replace_validator_at"):
            state = self._require_owner(sender)
            if not (0 <= index < len(state.validators)):
                raise PreconditionError(f"validator index out of range: {index}")
            self._replace_at(state, index, new, move_cursor=False)

    def _replace_at(self, state: PoolState, index: int, new: Address, *, move_cursor: bool) -> None:
        new = self._non_null_address(new, "replacement validator")
        if new in state.validators:
            raise PreconditionError(f"validator {new} is already on the roster")
        old = state.validators[index]
        moved = self._pull_all(old)
        roster = list(state.validators)
        roster[index] = new
        cursor = index if move_cursor else state.validator_index
        self._state = replace(state, validators=tuple(roster), validator_index=cursor)
        self._state, _ = distribute(self._state, moved, self._registry)
        self._emit(Event.VALIDATOR_REPLACED, old=old, new=new, index=index, redelegated=moved)
        logger.info("validator %s replaced by %s, %d re-delegated", old, new, moved)

    def set_validator_index(self, sender: Address, index: int) -> None:
        with self._transaction("set_validator_index"):
            state = self._require_owner(sender)
            if not (0 <= index < len(state.validators)):
                raise PreconditionError(f"validator index out of range: {index}")
            self._state = replace(state, validator_index=index)
            self._emit(Event.CURSOR_CHANGED, index=index)

    # ------------------------------------------------------------------
    # Admin guardrails
    # ------------------------------------------------------------------

    def _with_limit(self, state: PoolState, limit: int) -> PoolState:
        if limit < 0:
            raise ConfigurationError(f"stake limit must be non-negative: {limit}")
        max_system = self._max_system_stake(state)
        if limit > max_system:
            raise ConfigurationError(f"stake limit {limit} exceeds validator capacity {max_system}")
        over_limit = state.over_limit
        if limit > state.system_total_staked:
            over_limit = transition(over_limit, "clear")
        return replace(state, system_stake_limit=limit, over_limit=over_limit)

    def set_stake_limit(self, sender: Address, limit: int) -> None:
        with self._transaction("set_stake_limit"):
            state = self._require_owner(sender)
            if limit == state.system_stake_limit:
                raise ConfigurationError("stake limit unchanged")
            self._state = self._with_limit(state, limit)
            self._emit(Event.LIMIT_CHANGED, limit=limit)
        logger.info("stake limit set to %d", limit)

    def disable_safeguard(self, sender: Address) -> None:
        with self._transaction("disable_safeguard"):
            state = self._require_owner(sender)
            self._state = replace(state, safeguard=transition(state.safeguard, "disable"))
            self._emit(Event.SAFEGUARD_DISABLED)

    def enable_safeguard(self, sender: Address, limit: int) -> None:
        """Re-arm the safeguard together with a fresh stake limit."""
        with self._transaction("enable_safeguard"):
            state = self._require_owner(sender)
            state = replace(state, safeguard=transition(state.safeguard, "enable"))
            self._state = self._with_limit(state, limit)
            self._emit(Event.SAFEGUARD_ENABLED, limit=limit)

    def set_protocol_fee(self, sender: Address, fee_bps: int) -> None:
        with self._transaction("set_protocol_fee"):
            state = self._require_owner(sender)
            if not (0 <= fee_bps <= MAX_PROTOCOL_FEE_BPS):
                raise ConfigurationError(f"protocol fee must be in [0, {MAX_PROTOCOL_FEE_BPS}] bps: {fee_bps}")
            self._state = replace(state, protocol_fee_bps=fee_bps)
            self._emit(Event.FEE_CHANGED, fee_bps=fee_bps)
        logger.info("protocol fee set to %d bps", fee_bps)

    def pause(self, sender: Address) -> None:
        with self._transaction("pause"):
            state = self._require_owner(sender)
            self._state = replace(state, pause=transition(state.pause, "pause"))
            self._emit(Event.PAUSED)

    def unpause(self, sender: Address) -> None:
        with self._transaction("unpause"):
            state = self._require_owner(sender)
            self._state = replace(state, pause=transition(state.pause, "unpause"))
            self._emit(Event.UNPAUSED)

    def transfer_ownership(self, sender: Address, new_owner: Address) -> None:
        with self._transaction("transfer_ownership"):
            state = self._require_owner(sender)
            new_owner = self._non_null_address(new_owner, "new owner")
            self._state = replace(state, owner=new_owner)
            self._emit(Event.OWNERSHIP_TRANSFERRED, previous=state.owner, owner=new_owner)

    def set_treasury(self, sender: Address, treasury: Address) -> None:
        with self._transaction("set_treasury"):
            state = self._require_owner(sender)
            treasury = self._non_null_address(treasury, "treasury")
            self._state = replace(state, treasury=treasury)
            self._emit(Event.TREASURY_CHANGED, treasury=treasury)

    def set_epoch_interval(self, sender: Address, interval: int) -> None:
        with self._transaction("set_epoch_interval"):
            state = self._require_owner(sender)
            if interval <= 0:
                raise ConfigurationError(f"epoch interval must be positive: {interval}")
            self._state = replace(state, epoch_interval=interval)
            self._emit(Event.EPOCH_INTERVAL_CHANGED, interval=interval)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> PoolState:
        return self._require_state()

    @property
    def events(self) -> tuple[PoolEvent, ...]:
        return tuple(self._events)

    @property
    def price_ratio(self) -> int:
        return self._require_state().price_ratio

    @property
    def epoch(self) -> int:
        return self._require_state().epoch

    @property
    def epoch_interval(self) -> int:
        return self._require_state().epoch_interval

    @property
    def last_update_time(self) -> int:
        return self._require_state().last_update_time

    @property
    def system_stake_limit(self) -> int:
        return self._require_state().system_stake_limit

    @property
    def system_total_staked(self) -> int:
        return self._require_state().system_total_staked

    @property
    def safeguard_enabled(self) -> bool:
        return self._require_state().safeguard_enabled

    @property
    def over_limit(self) -> bool:
        return self._require_state().is_over_limit

    @property
    def owner(self) -> Address:
        return self._require_state().owner

    @property
    def treasury(self) -> Address:
        return self._require_state().treasury

    @property
    def registry_address(self) -> Address:
        return self._require_state().registry_ref

    @property
    def token_address(self) -> Address:
        return self._require_state().token_ledger_ref

    @property
    def validators(self) -> tuple[Address, ...]:
        return self._require_state().validators

    @property
    def validator_count(self) -> int:
        return len(self._require_state().validators)

    def is_validator(self, validator: Address) -> bool:
        return canonical_address(validator, name="validator") in self._require_state().validators

    @property
    def validator_index(self) -> int:
        return self._require_state().validator_index

    @property
    def protocol_fee_bps(self) -> int:
        return self._require_state().protocol_fee_bps

    @property
    def paused(self) -> bool:
        return self._require_state().is_paused

    def delegations(self) -> Mapping[Address, int]:
        """The pool's delegated amount per roster validator, read from the registry."""
        return {
            v: self._registry.delegated_amount(self.address, v)
            for v in self._require_state().validators
        }

    def claim_balance(self, holder: Address) -> int:
        return self._token.balance_of(holder)

    def preview_deposit(self, value: int) -> int:
        """Claim tokens `value` would mint at the current (unrealized) ratio."""
        return tokens_for_value(value, self._require_state().price_ratio)

    def preview_withdraw(self, amount: int) -> int:
        """Base units `amount` claim tokens would pay at the current (unrealized) ratio."""
        return value_for_tokens(amount, self._require_state().price_ratio)

    def check_invariants(self) -> list[str]:
        state = self._require_state()
        return check_all(state) + capacity_violations(state, self._registry)

    def state_digest(self) -> str:
        return pool_state_digest(self._require_state())
