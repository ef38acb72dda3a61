"""Record-level validation predicates and rejection reason codes."""
