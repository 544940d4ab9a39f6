"""Cross-app tests for the Growth Flow Automations site backend."""
