"""Core domain: entity schemas, storage protocols and tracked-write services."""
