"""Command bridge — todo CRUD over pub/sub with correlated responses."""
