"""
Theurgy - Command implementations for the Lino client CLI.

Each module corresponds to a top-level CLI command:
- keygen:    Generate a secp256k1 keypair (optionally save it)
- query:     Read records from the node's stores
- broadcast: Sign and submit transactions (transfer, send)
"""
