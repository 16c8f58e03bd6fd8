"""
Record queries against the node's key-value stores.

Point getters fetch one key and decode it.  Range getters scan a prefix,
decode every entry and key the result by the entry's logical id.  Decoding
is fail-fast: one bad entry aborts the whole call, and no partial results
are ever returned.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Optional, TypeVar

from ..errors import DecodeError
from ..sigil.keys import parse_public_key, public_key_bytes
from ..spec import models
from ..spec.schemas import SchemaRegistry, SchemaValidationError
from . import keys
from .transport import Transport

logger = logging.getLogger(__name__)

R = TypeVar("R")


def decode_record(raw: bytes, record_cls: type[R], registry: Optional[SchemaRegistry] = None) -> R:
    """
    Deserialize raw store bytes into ``record_cls``.

    Raises:
        DecodeError: If ``raw`` is not JSON or does not match the record schema
    """
    registry = registry or SchemaRegistry.default()
    name = record_cls.SCHEMA  # type: ignore[attr-defined]
    try:
        payload = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise DecodeError(f"{name}: value is not valid JSON", exc) from exc
    try:
        registry.validate_instance(payload, name)
    except SchemaValidationError as exc:
        raise DecodeError(f"{name}: {'; '.join(exc.errors)}", exc) from exc
    try:
        return record_cls.from_dict(payload)  # type: ignore[attr-defined]
    except (ValueError, KeyError, TypeError) as exc:
        raise DecodeError(f"{name}: {exc}", exc) from exc


class Query:
    def __init__(self, transport: Transport, registry: Optional[SchemaRegistry] = None) -> None:
        self.transport = transport
        self.registry = registry or SchemaRegistry.default()

    async def _get(self, key: bytes, store_name: str, record_cls: type[R]) -> R:
        raw = await self.transport.query(key, store_name)
        return decode_record(raw, record_cls, self.registry)

    async def _get_all(
        self,
        prefix: bytes,
        store_name: str,
        record_cls: type[R],
        key_of: Callable[[bytes], str],
    ) -> dict[str, R]:
        records: dict[str, R] = {}
        for kv in await self.transport.query_subspace(prefix, store_name):
            records[key_of(kv.key)] = decode_record(kv.value, record_cls, self.registry)
        logger.debug("decoded %d %s entries from /%s", len(records), record_cls.__name__, store_name)
        return records

    @staticmethod
    def _after_separator(prefix: bytes) -> Callable[[bytes], str]:
        return lambda key: keys.get_substring_after_key_separator(key, prefix)

    # ============ Post ============

    async def get_post_info(self, author: str, post_id: str) -> models.PostInfo:
        """Post info given a permlink (author#postID)."""
        permlink = keys.get_permlink(author, post_id)
        return await self._get(keys.get_post_info_key(permlink), keys.POST_KV_STORE_KEY, models.PostInfo)

    async def get_post_meta(self, author: str, post_id: str) -> models.PostMeta:
        permlink = keys.get_permlink(author, post_id)
        return await self._get(keys.get_post_meta_key(permlink), keys.POST_KV_STORE_KEY, models.PostMeta)

    async def get_post(self, author: str, post_id: str) -> models.Post:
        """Post info merged with its meta."""
        info = await self.get_post_info(author, post_id)
        meta = await self.get_post_meta(author, post_id)
        return models.Post.merge(info, meta)

    async def get_post_comment(self, author: str, post_id: str, comment_permlink: str) -> models.Comment:
        permlink = keys.get_permlink(author, post_id)
        return await self._get(
            keys.get_post_comment_key(permlink, comment_permlink),
            keys.POST_KV_STORE_KEY,
            models.Comment,
        )

    async def get_post_view(self, author: str, post_id: str, view_user: str) -> models.View:
        permlink = keys.get_permlink(author, post_id)
        return await self._get(
            keys.get_post_view_key(permlink, view_user),
            keys.POST_KV_STORE_KEY,
            models.View,
        )

    async def get_post_donations(self, author: str, post_id: str, donate_user: str) -> models.Donations:
        """All donations ``donate_user`` has given to a post."""
        permlink = keys.get_permlink(author, post_id)
        return await self._get(
            keys.get_post_donations_key(permlink, donate_user),
            keys.POST_KV_STORE_KEY,
            models.Donations,
        )

    async def get_post_report_or_upvote(self, author: str, post_id: str, user: str) -> models.ReportOrUpvote:
        permlink = keys.get_permlink(author, post_id)
        return await self._get(
            keys.get_post_report_or_upvote_key(permlink, user),
            keys.POST_KV_STORE_KEY,
            models.ReportOrUpvote,
        )

    async def get_user_all_posts(self, username: str) -> dict[str, models.Post]:
        """
        All posts ``username`` has created, keyed by permlink.

        Each post info found by the range scan is completed with a point query
        for its meta; any failure fails the whole call.
        """
        prefix = keys.get_user_post_info_prefix(username)
        posts: dict[str, models.Post] = {}
        for kv in await self.transport.query_subspace(prefix, keys.POST_KV_STORE_KEY):
            info = decode_record(kv.value, models.PostInfo, self.registry)
            meta = await self.get_post_meta(info.author, info.post_id)
            posts[keys.get_substring_after_substore(kv.key, keys.POST_INFO_SUBSTORE)] = models.Post.merge(info, meta)
        return posts

    async def get_post_all_comments(self, author: str, post_id: str) -> dict[str, models.Comment]:
        prefix = keys.get_post_comment_prefix(keys.get_permlink(author, post_id))
        return await self._get_all(prefix, keys.POST_KV_STORE_KEY, models.Comment, self._after_separator(prefix))

    async def get_post_all_views(self, author: str, post_id: str) -> dict[str, models.View]:
        prefix = keys.get_post_view_prefix(keys.get_permlink(author, post_id))
        return await self._get_all(prefix, keys.POST_KV_STORE_KEY, models.View, self._after_separator(prefix))

    async def get_post_all_donations(self, author: str, post_id: str) -> dict[str, models.Donations]:
        prefix = keys.get_post_donations_prefix(keys.get_permlink(author, post_id))
        return await self._get_all(prefix, keys.POST_KV_STORE_KEY, models.Donations, self._after_separator(prefix))

    async def get_post_all_report_or_upvotes(self, author: str, post_id: str) -> dict[str, models.ReportOrUpvote]:
        prefix = keys.get_post_report_or_upvote_prefix(keys.get_permlink(author, post_id))
        return await self._get_all(
            prefix, keys.POST_KV_STORE_KEY, models.ReportOrUpvote, self._after_separator(prefix)
        )

    # ============ Validator ============

    async def get_validator(self, username: str) -> models.Validator:
        return await self._get(keys.get_validator_key(username), keys.VALIDATOR_KV_STORE_KEY, models.Validator)

    async def get_all_validators(self) -> models.ValidatorList:
        """The oncall/all/pre-block validator lists."""
        return await self._get(keys.get_validator_list_key(), keys.VALIDATOR_KV_STORE_KEY, models.ValidatorList)

    # ============ Account ============

    async def get_account_info(self, username: str) -> models.AccountInfo:
        return await self._get(keys.get_account_info_key(username), keys.ACCOUNT_KV_STORE_KEY, models.AccountInfo)

    async def get_account_bank(self, username: str) -> models.AccountBank:
        return await self._get(keys.get_account_bank_key(username), keys.ACCOUNT_KV_STORE_KEY, models.AccountBank)

    async def get_account_meta(self, username: str) -> models.AccountMeta:
        return await self._get(keys.get_account_meta_key(username), keys.ACCOUNT_KV_STORE_KEY, models.AccountMeta)

    async def get_seq_number(self, username: str) -> int:
        """Next sequence number the node expects from ``username``."""
        meta = await self.get_account_meta(username)
        return meta.sequence

    async def get_reward(self, username: str) -> models.Reward:
        return await self._get(keys.get_reward_key(username), keys.ACCOUNT_KV_STORE_KEY, models.Reward)

    async def get_relationship(self, me: str, other: str) -> models.Relationship:
        return await self._get(
            keys.get_relationship_key(me, other),
            keys.ACCOUNT_KV_STORE_KEY,
            models.Relationship,
        )

    async def get_grant_pub_key(self, username: str, pub_key_hex: str) -> models.GrantPubKey:
        pub_key = public_key_bytes(parse_public_key(pub_key_hex))
        return await self._get(
            keys.get_grant_pub_key_key(username, pub_key),
            keys.ACCOUNT_KV_STORE_KEY,
            models.GrantPubKey,
        )

    async def get_all_follower_meta(self, username: str) -> dict[str, models.FollowerMeta]:
        prefix = keys.get_follower_prefix(username)
        return await self._get_all(
            prefix, keys.ACCOUNT_KV_STORE_KEY, models.FollowerMeta, self._after_separator(prefix)
        )

    async def get_all_following_meta(self, username: str) -> dict[str, models.FollowingMeta]:
        prefix = keys.get_following_prefix(username)
        return await self._get_all(
            prefix, keys.ACCOUNT_KV_STORE_KEY, models.FollowingMeta, self._after_separator(prefix)
        )

    async def get_all_relationships(self, username: str) -> dict[str, models.Relationship]:
        prefix = keys.get_relationship_prefix(username)
        return await self._get_all(
            prefix, keys.ACCOUNT_KV_STORE_KEY, models.Relationship, self._after_separator(prefix)
        )

    # ============ Vote ============

    async def get_voter(self, username: str) -> models.Voter:
        return await self._get(keys.get_voter_key(username), keys.VOTE_KV_STORE_KEY, models.Voter)

    async def get_vote(self, proposal_id: str, voter: str) -> models.Vote:
        return await self._get(keys.get_vote_key(proposal_id, voter), keys.VOTE_KV_STORE_KEY, models.Vote)

    async def get_delegation(self, voter: str, delegator: str) -> models.Delegation:
        return await self._get(
            keys.get_delegation_key(voter, delegator),
            keys.VOTE_KV_STORE_KEY,
            models.Delegation,
        )

    async def get_voter_all_delegation(self, voter: str) -> dict[str, models.Delegation]:
        """Every delegation to ``voter``, keyed by delegator."""
        prefix = keys.get_delegation_prefix(voter)
        return await self._get_all(prefix, keys.VOTE_KV_STORE_KEY, models.Delegation, self._after_separator(prefix))

    async def get_proposal_all_votes(self, proposal_id: str) -> dict[str, models.Vote]:
        prefix = keys.get_vote_prefix(proposal_id)
        return await self._get_all(prefix, keys.VOTE_KV_STORE_KEY, models.Vote, self._after_separator(prefix))

    # ============ Developer ============

    async def get_developer(self, username: str) -> models.Developer:
        return await self._get(keys.get_developer_key(username), keys.DEVELOPER_KV_STORE_KEY, models.Developer)

    async def get_developer_list(self) -> models.DeveloperList:
        return await self._get(keys.get_developer_list_key(), keys.DEVELOPER_KV_STORE_KEY, models.DeveloperList)

    async def get_all_developers(self) -> dict[str, models.Developer]:
        prefix = keys.get_developer_prefix()
        return await self._get_all(
            prefix,
            keys.DEVELOPER_KV_STORE_KEY,
            models.Developer,
            lambda key: keys.get_substring_after_substore(key, prefix),
        )

    # ============ Infra ============

    async def get_infra_provider(self, username: str) -> models.InfraProvider:
        return await self._get(keys.get_infra_provider_key(username), keys.INFRA_KV_STORE_KEY, models.InfraProvider)

    async def get_infra_provider_list(self) -> models.InfraProviderList:
        return await self._get(
            keys.get_infra_provider_list_key(),
            keys.INFRA_KV_STORE_KEY,
            models.InfraProviderList,
        )
