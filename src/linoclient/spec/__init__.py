"""
Spec - Typed shapes exchanged with the node.

- models:   records decoded from the key-value stores
- messages: signable message variants, keyed by wire tag
- params:   governance parameters for change-parameter messages
- schemas:  JSON Schema registry used to validate raw records
"""
