"""Report lint results as GitHub check run annotations."""
