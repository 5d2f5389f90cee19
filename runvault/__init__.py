"""RunVault -- execution routing and workspace sync for a browser-hosted IDE."""
