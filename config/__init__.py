"""Provider configuration: YAML loader and immutable snapshots."""
