"""StackWatch - endpoint liveness checks, incidents, and alerting."""
