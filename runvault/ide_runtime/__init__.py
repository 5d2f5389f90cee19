"""Client-side runtime of the workspace: execution routing, persistence and sync."""
