"""Service layer: async functions that combine the record store with the in-memory core."""
