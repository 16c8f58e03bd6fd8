"""
Store names and key layout.

Keys must match the node's layout byte for byte:

- point keys are ``substore + primary id``
- sub-entity keys append ``KEY_SEPARATOR`` and a secondary id
- prefix keys stop exactly at a separator boundary

A post is addressed by its permlink, ``author + "#" + post_id``.
"""

from __future__ import annotations

from ..errors import DecodeError

POST_KV_STORE_KEY = "post"
ACCOUNT_KV_STORE_KEY = "account"
VALIDATOR_KV_STORE_KEY = "validator"
VOTE_KV_STORE_KEY = "vote"
DEVELOPER_KV_STORE_KEY = "developer"
INFRA_KV_STORE_KEY = "infra"

KEY_SEPARATOR = b"/"
PERMLINK_SEPARATOR = b"#"

# post store
POST_INFO_SUBSTORE = b"\x00"
POST_META_SUBSTORE = b"\x01"
POST_REPORT_OR_UPVOTE_SUBSTORE = b"\x03"
POST_COMMENT_SUBSTORE = b"\x04"
POST_VIEW_SUBSTORE = b"\x05"
POST_DONATIONS_SUBSTORE = b"\x06"

# account store
ACCOUNT_INFO_SUBSTORE = b"\x00"
ACCOUNT_BANK_SUBSTORE = b"\x01"
ACCOUNT_META_SUBSTORE = b"\x02"
ACCOUNT_FOLLOWER_SUBSTORE = b"\x03"
ACCOUNT_FOLLOWING_SUBSTORE = b"\x04"
ACCOUNT_REWARD_SUBSTORE = b"\x05"
ACCOUNT_RELATIONSHIP_SUBSTORE = b"\x07"
ACCOUNT_GRANT_PUB_KEY_SUBSTORE = b"\x09"

# validator store
VALIDATOR_SUBSTORE = b"\x00"
VALIDATOR_LIST_SUBSTORE = b"\x01"

# vote store
DELEGATION_SUBSTORE = b"\x00"
VOTER_SUBSTORE = b"\x01"
VOTE_SUBSTORE = b"\x02"

# developer store
DEVELOPER_SUBSTORE = b"\x00"
DEVELOPER_LIST_SUBSTORE = b"\x01"

# infra store
INFRA_PROVIDER_SUBSTORE = b"\x00"
INFRA_PROVIDER_LIST_SUBSTORE = b"\x01"


def _b(value: str) -> bytes:
    return value.encode("utf-8")


def get_permlink(author: str, post_id: str) -> str:
    return author + PERMLINK_SEPARATOR.decode() + post_id


# ============ Post ============


def get_post_info_key(permlink: str) -> bytes:
    return POST_INFO_SUBSTORE + _b(permlink)


def get_user_post_info_prefix(author: str) -> bytes:
    return POST_INFO_SUBSTORE + _b(author) + PERMLINK_SEPARATOR


def get_post_meta_key(permlink: str) -> bytes:
    return POST_META_SUBSTORE + _b(permlink)


def get_post_comment_prefix(permlink: str) -> bytes:
    return POST_COMMENT_SUBSTORE + _b(permlink) + KEY_SEPARATOR


def get_post_comment_key(permlink: str, comment_permlink: str) -> bytes:
    return get_post_comment_prefix(permlink) + _b(comment_permlink)


def get_post_view_prefix(permlink: str) -> bytes:
    return POST_VIEW_SUBSTORE + _b(permlink) + KEY_SEPARATOR


def get_post_view_key(permlink: str, view_user: str) -> bytes:
    return get_post_view_prefix(permlink) + _b(view_user)


def get_post_donations_prefix(permlink: str) -> bytes:
    return POST_DONATIONS_SUBSTORE + _b(permlink) + KEY_SEPARATOR


def get_post_donations_key(permlink: str, donate_user: str) -> bytes:
    return get_post_donations_prefix(permlink) + _b(donate_user)


def get_post_report_or_upvote_prefix(permlink: str) -> bytes:
    return POST_REPORT_OR_UPVOTE_SUBSTORE + _b(permlink) + KEY_SEPARATOR


def get_post_report_or_upvote_key(permlink: str, user: str) -> bytes:
    return get_post_report_or_upvote_prefix(permlink) + _b(user)


# ============ Account ============


def get_account_info_key(username: str) -> bytes:
    return ACCOUNT_INFO_SUBSTORE + _b(username)


def get_account_bank_key(username: str) -> bytes:
    return ACCOUNT_BANK_SUBSTORE + _b(username)


def get_account_meta_key(username: str) -> bytes:
    return ACCOUNT_META_SUBSTORE + _b(username)


def get_reward_key(username: str) -> bytes:
    return ACCOUNT_REWARD_SUBSTORE + _b(username)


def get_follower_prefix(me: str) -> bytes:
    return ACCOUNT_FOLLOWER_SUBSTORE + _b(me) + KEY_SEPARATOR


def get_follower_key(me: str, follower: str) -> bytes:
    return get_follower_prefix(me) + _b(follower)


def get_following_prefix(me: str) -> bytes:
    return ACCOUNT_FOLLOWING_SUBSTORE + _b(me) + KEY_SEPARATOR


def get_following_key(me: str, following: str) -> bytes:
    return get_following_prefix(me) + _b(following)


def get_relationship_prefix(me: str) -> bytes:
    return ACCOUNT_RELATIONSHIP_SUBSTORE + _b(me) + KEY_SEPARATOR


def get_relationship_key(me: str, other: str) -> bytes:
    return get_relationship_prefix(me) + _b(other)


def get_grant_pub_key_prefix(me: str) -> bytes:
    return ACCOUNT_GRANT_PUB_KEY_SUBSTORE + _b(me) + KEY_SEPARATOR


def get_grant_pub_key_key(me: str, pub_key: bytes) -> bytes:
    return get_grant_pub_key_prefix(me) + pub_key


# ============ Validator ============


def get_validator_key(username: str) -> bytes:
    return VALIDATOR_SUBSTORE + _b(username)


def get_validator_list_key() -> bytes:
    return VALIDATOR_LIST_SUBSTORE


# ============ Vote ============


def get_voter_key(username: str) -> bytes:
    return VOTER_SUBSTORE + _b(username)


def get_delegation_prefix(voter: str) -> bytes:
    return DELEGATION_SUBSTORE + _b(voter) + KEY_SEPARATOR


def get_delegation_key(voter: str, delegator: str) -> bytes:
    return get_delegation_prefix(voter) + _b(delegator)


def get_vote_prefix(proposal_id: str) -> bytes:
    return VOTE_SUBSTORE + _b(proposal_id) + KEY_SEPARATOR


def get_vote_key(proposal_id: str, voter: str) -> bytes:
    return get_vote_prefix(proposal_id) + _b(voter)


# ============ Developer / Infra ============


def get_developer_key(username: str) -> bytes:
    return DEVELOPER_SUBSTORE + _b(username)


def get_developer_prefix() -> bytes:
    return DEVELOPER_SUBSTORE


def get_developer_list_key() -> bytes:
    return DEVELOPER_LIST_SUBSTORE


def get_infra_provider_key(username: str) -> bytes:
    return INFRA_PROVIDER_SUBSTORE + _b(username)


def get_infra_provider_list_key() -> bytes:
    return INFRA_PROVIDER_LIST_SUBSTORE


# ============ Range-scan key stripping ============


def strip_prefix(key: bytes, prefix: bytes, separator: bytes | None = None) -> str:
    """
    Recover the logical id of a range-scan entry.

    ``prefix`` is removed first; when ``separator`` is given and the remainder
    still begins with it, that one leading separator is dropped too.  The id
    itself may contain the separator.

    Raises:
        DecodeError: If ``key`` does not start with ``prefix``
    """
    if not key.startswith(prefix):
        raise DecodeError(f"Key {key!r} does not start with prefix {prefix!r}.")
    rest = key[len(prefix):]
    if separator and rest.startswith(separator):
        rest = rest[len(separator):]
    try:
        return rest.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Key {key!r} is not valid UTF-8.", exc) from exc


def get_substring_after_substore(key: bytes, substore: bytes) -> str:
    return strip_prefix(key, substore)


def get_substring_after_key_separator(key: bytes, prefix: bytes) -> str:
    return strip_prefix(key, prefix, KEY_SEPARATOR)
