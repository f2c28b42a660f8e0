"""Pure slug rules: normalization, validation policy, owner identity."""
