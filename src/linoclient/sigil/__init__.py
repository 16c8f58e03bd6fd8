"""
Sigil - Keys and signatures for the Lino client.

secp256k1 key parsing/generation lives in ``keys``; canonical sign bytes,
signatures and transaction envelopes live in ``crypto``.
"""
