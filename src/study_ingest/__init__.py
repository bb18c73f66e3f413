"""Study content ingestion: extraction workers and AI study material generation."""
