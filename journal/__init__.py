"""Journal: semantic retrieval and embedding sync over journal notes."""
