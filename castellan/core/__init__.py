"""Core building blocks: configuration, errors, references and RBAC."""
