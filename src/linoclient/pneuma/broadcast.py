"""
Transaction broadcast.

Every wrapper builds one message and hands it to ``_broadcast_transaction``,
which runs sign -> encode -> submit as its own task and races it against the
caller's cancel event and timeout.  Whichever finishes first decides the
outcome; a pipeline that loses the race is left to finish on its own and its
result is dropped.

Common keyword options accepted by every wrapper:

- ``confirm_only``: return once the node admits the tx into its pending pool
- ``memo``: unsigned note attached to the envelope
- ``cancel``: ``asyncio.Event`` that aborts the wait when set
- ``timeout``: seconds to wait before giving up
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from ..errors import BroadcastError, BroadcastTimeoutError
from ..sigil.crypto import Msg
from ..sigil.keys import normalize_public_key_hex
from ..spec import messages as m
from ..spec import params
from ..spec.models import BroadcastResponse, IDToURLMapping
from . import keys
from .result import interpret_broadcast_result
from .transport import Transport

logger = logging.getLogger(__name__)


def _links(links: Optional[dict[str, str]]) -> Optional[list[IDToURLMapping]]:
    if not links:
        return None
    return [IDToURLMapping(identifier=k, url=v) for k, v in links.items()]


class Broadcast:
    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        # pipelines that lost the race, kept referenced until they finish
        self._abandoned: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of abandoned pipelines still in flight."""
        return len(self._abandoned)

    async def drain(self) -> None:
        """Wait for every abandoned pipeline to finish, ignoring its outcome."""
        if self._abandoned:
            await asyncio.gather(*list(self._abandoned), return_exceptions=True)

    def _abandon(self, task: asyncio.Task) -> None:
        self._abandoned.add(task)
        task.add_done_callback(self._reap)

    def _reap(self, task: asyncio.Task) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            logger.debug("abandoned broadcast was cancelled")
        elif task.exception() is not None:
            logger.debug("abandoned broadcast failed: %s", type(task.exception()).__name__)
        else:
            logger.debug("abandoned broadcast finished, result discarded")

    async def _broadcast_transaction(
        self,
        msg: Msg,
        priv_key_hex: str,
        seq: int,
        *,
        memo: str = "",
        confirm_only: bool = False,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> BroadcastResponse:
        msg_type = getattr(msg, "TYPE", type(msg).__name__)
        if cancel is not None and cancel.is_set():
            cause = asyncio.CancelledError()
            raise BroadcastTimeoutError(f"msg timeout: {msg_type}", cause) from cause

        pipeline = asyncio.ensure_future(
            self.transport.sign_build_broadcast(msg, priv_key_hex, seq, memo=memo, confirm_only=confirm_only)
        )
        waiters: set[asyncio.Future] = {pipeline}
        canceller: Optional[asyncio.Future] = None
        if cancel is not None:
            canceller = asyncio.ensure_future(cancel.wait())
            waiters.add(canceller)

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            self._abandon(pipeline)
            raise
        finally:
            if canceller is not None and not canceller.done():
                canceller.cancel()

        if pipeline not in done:
            self._abandon(pipeline)
            cause = asyncio.CancelledError() if canceller is not None and canceller in done else asyncio.TimeoutError()
            raise BroadcastTimeoutError(f"msg timeout: {msg_type}", cause) from cause

        try:
            resp = interpret_broadcast_result(pipeline.result(), confirm_only)
        except BroadcastError as exc:
            logger.warning("%s seq=%d rejected at %s: code=%d %s", msg_type, seq, exc.stage, exc.code, exc.log)
            raise

        logger.info("%s seq=%d committed: %s", msg_type, seq, resp.commit_hash)
        return resp

    # ============ Account ============

    async def register(
        self,
        referrer: str,
        register_fee: str,
        username: str,
        reset_pub_key_hex: str,
        transaction_pub_key_hex: str,
        app_pub_key_hex: str,
        referrer_priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        """Register ``username`` with three public keys; signed by the referrer."""
        msg = m.RegisterMsg(
            referrer=referrer,
            register_fee=register_fee,
            new_username=username,
            new_reset_public_key=normalize_public_key_hex(reset_pub_key_hex),
            new_transaction_public_key=normalize_public_key_hex(transaction_pub_key_hex),
            new_app_public_key=normalize_public_key_hex(app_pub_key_hex),
        )
        return await self._broadcast_transaction(msg, referrer_priv_key_hex, seq, **options)

    async def transfer(
        self, sender: str, receiver: str, amount: str, msg_memo: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        """
        Send ``amount`` LINO from ``sender`` to ``receiver``.

        ``msg_memo`` is signed into the transfer itself; the ``memo`` option
        still sets the unsigned envelope note.
        """
        msg = m.TransferMsg(sender=sender, receiver=receiver, amount=amount, memo=msg_memo)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def follow(self, follower: str, followee: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        msg = m.FollowMsg(follower=follower, followee=followee)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def unfollow(self, follower: str, followee: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        msg = m.UnfollowMsg(follower=follower, followee=followee)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def claim(self, username: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        """Claim content reward."""
        return await self._broadcast_transaction(m.ClaimMsg(username=username), priv_key_hex, seq, **options)

    async def claim_interest(self, username: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        """Claim interest earned on stake."""
        return await self._broadcast_transaction(m.ClaimInterestMsg(username=username), priv_key_hex, seq, **options)

    async def update_account(
        self, username: str, json_meta: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.UpdateAccountMsg(username=username, json_meta=json_meta)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def recover(
        self,
        username: str,
        new_reset_pub_key_hex: str,
        new_transaction_pub_key_hex: str,
        new_app_pub_key_hex: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        """Replace all three keys of ``username``; signed by the reset key."""
        msg = m.RecoverMsg(
            username=username,
            new_reset_public_key=normalize_public_key_hex(new_reset_pub_key_hex),
            new_transaction_public_key=normalize_public_key_hex(new_transaction_pub_key_hex),
            new_app_public_key=normalize_public_key_hex(new_app_pub_key_hex),
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    # ============ Post ============

    async def create_post(
        self,
        author: str,
        post_id: str,
        title: str,
        content: str,
        parent_author: str,
        parent_post_id: str,
        source_author: str,
        source_post_id: str,
        redistribution_split_rate: str,
        links: Optional[dict[str, str]],
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.CreatePostMsg(
            author=author,
            post_id=post_id,
            title=title,
            content=content,
            parent_author=parent_author,
            parent_post_id=parent_post_id,
            source_author=source_author,
            source_post_id=source_post_id,
            links=_links(links),
            redistribution_split_rate=redistribution_split_rate,
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def create_post_sync(self, *args: Any, **options: Any) -> BroadcastResponse:
        """``create_post`` returning as soon as the pending pool accepts it."""
        options["confirm_only"] = True
        return await self.create_post(*args, **options)

    async def donate(
        self,
        username: str,
        author: str,
        amount: str,
        post_id: str,
        from_app: str,
        msg_memo: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.DonateMsg(
            username=username,
            amount=amount,
            author=author,
            post_id=post_id,
            from_app=from_app,
            memo=msg_memo,
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def donate_sync(self, *args: Any, **options: Any) -> BroadcastResponse:
        """``donate`` returning as soon as the pending pool accepts it."""
        options["confirm_only"] = True
        return await self.donate(*args, **options)

    async def report_or_upvote(
        self, username: str, author: str, post_id: str, is_report: bool, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ReportOrUpvoteMsg(username=username, author=author, post_id=post_id, is_report=is_report)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def delete_post(self, author: str, post_id: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        msg = m.DeletePostMsg(author=author, post_id=post_id)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def view(
        self, username: str, author: str, post_id: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ViewMsg(username=username, author=author, post_id=post_id)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def update_post(
        self,
        author: str,
        title: str,
        post_id: str,
        content: str,
        links: Optional[dict[str, str]],
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.UpdatePostMsg(author=author, post_id=post_id, title=title, content=content, links=_links(links))
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    # ============ Validator ============

    async def validator_deposit(
        self,
        username: str,
        deposit: str,
        validator_pub_key_hex: str,
        link: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        """Deposit LINO to become a validator.  The user must already be a voter."""
        msg = m.ValidatorDepositMsg(
            username=username,
            deposit=deposit,
            validator_public_key=normalize_public_key_hex(validator_pub_key_hex),
            link=link,
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def validator_withdraw(
        self, username: str, amount: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ValidatorWithdrawMsg(username=username, amount=amount)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def validator_revoke(self, username: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        return await self._broadcast_transaction(m.ValidatorRevokeMsg(username=username), priv_key_hex, seq, **options)

    # ============ Vote ============

    async def stake_in(self, username: str, deposit: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        msg = m.StakeInMsg(username=username, deposit=deposit)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def stake_out(self, username: str, amount: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        msg = m.StakeOutMsg(username=username, amount=amount)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def delegate(
        self, delegator: str, voter: str, amount: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.DelegateMsg(delegator=delegator, voter=voter, amount=amount)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def delegator_withdraw(
        self, delegator: str, voter: str, amount: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.DelegatorWithdrawMsg(delegator=delegator, voter=voter, amount=amount)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    # ============ Developer ============

    async def developer_register(
        self,
        username: str,
        deposit: str,
        website: str,
        description: str,
        app_meta_data: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.DeveloperRegisterMsg(
            username=username,
            deposit=deposit,
            website=website,
            description=description,
            app_meta_data=app_meta_data,
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def developer_update(
        self,
        username: str,
        website: str,
        description: str,
        app_meta_data: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.DeveloperUpdateMsg(
            username=username,
            website=website,
            description=description,
            app_meta_data=app_meta_data,
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def developer_revoke(self, username: str, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        return await self._broadcast_transaction(m.DeveloperRevokeMsg(username=username), priv_key_hex, seq, **options)

    async def grant_permission(
        self,
        username: str,
        authorized_app: str,
        validity_period_sec: int,
        grant_level: params.Permission,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.GrantPermissionMsg(
            username=username,
            authorized_app=authorized_app,
            validity_period_second=validity_period_sec,
            grant_level=int(grant_level),
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def pre_authorization_permission(
        self,
        username: str,
        authorized_app: str,
        validity_period_sec: int,
        amount: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        """Let ``authorized_app`` spend up to ``amount`` for the given period."""
        msg = m.PreAuthorizationMsg(
            username=username,
            authorized_app=authorized_app,
            validity_period_second=validity_period_sec,
            amount=amount,
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def revoke_permission(
        self, username: str, pub_key_hex: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.RevokePermissionMsg(username=username, public_key=normalize_public_key_hex(pub_key_hex))
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    # ============ Infra ============

    async def provider_report(self, username: str, usage: int, priv_key_hex: str, seq: int, **options: Any) -> BroadcastResponse:
        msg = m.ProviderReportMsg(username=username, usage=usage)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    # ============ Proposal ============

    async def change_evaluate_of_content_value_param(
        self,
        creator: str,
        parameter: params.EvaluateOfContentValueParam,
        reason: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.ChangeEvaluateOfContentValueParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_global_allocation_param(
        self,
        creator: str,
        parameter: params.GlobalAllocationParam,
        reason: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.ChangeGlobalAllocationParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_infra_internal_allocation_param(
        self,
        creator: str,
        parameter: params.InfraInternalAllocationParam,
        reason: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        msg = m.ChangeInfraInternalAllocationParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_vote_param(
        self, creator: str, parameter: params.VoteParam, reason: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ChangeVoteParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_proposal_param(
        self, creator: str, parameter: params.ProposalParam, reason: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ChangeProposalParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_developer_param(
        self, creator: str, parameter: params.DeveloperParam, reason: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ChangeDeveloperParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_validator_param(
        self, creator: str, parameter: params.ValidatorParam, reason: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ChangeValidatorParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_bandwidth_param(
        self, creator: str, parameter: params.BandwidthParam, reason: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ChangeBandwidthParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_account_param(
        self, creator: str, parameter: params.AccountParam, reason: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ChangeAccountParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def change_post_param(
        self, creator: str, parameter: params.PostParam, reason: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.ChangePostParamMsg(creator=creator, parameter=parameter, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def delete_post_content(
        self,
        creator: str,
        post_author: str,
        post_id: str,
        reason: str,
        priv_key_hex: str,
        seq: int,
        **options: Any,
    ) -> BroadcastResponse:
        """Propose deleting the content of ``post_author``'s post."""
        msg = m.DeletePostContentMsg(
            creator=creator,
            permlink=keys.get_permlink(post_author, post_id),
            reason=reason,
        )
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def vote_proposal(
        self, voter: str, proposal_id: str, result: bool, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.VoteProposalMsg(voter=voter, proposal_id=proposal_id, result=result)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    async def upgrade_protocol(
        self, creator: str, link: str, reason: str, priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        msg = m.UpgradeProtocolMsg(creator=creator, link=link, reason=reason)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)

    # ============ Generic ============

    async def send(
        self, msg_type: str, fields: dict[str, Any], priv_key_hex: str, seq: int, **options: Any
    ) -> BroadcastResponse:
        """
        Broadcast any registered message built from plain fields.

        Raises:
            KeyError: If ``msg_type`` is not a registered message name
        """
        msg = m.build_message(msg_type, fields)
        return await self._broadcast_transaction(msg, priv_key_hex, seq, **options)
