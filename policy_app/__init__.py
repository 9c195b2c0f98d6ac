# Flask host and per-session components of the policy engine
