"""Change events — one per successful mutation, fanned out to both side channels."""
