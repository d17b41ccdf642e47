"""Pure domain layer: identity, access rules, clock, workflows and DTOs."""
