"""Auth module — session and role context consumed by the portal core."""
