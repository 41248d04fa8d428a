"""Business logic layer: session lifecycle rules on top of the repositories."""
