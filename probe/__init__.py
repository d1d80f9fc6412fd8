"""Post-deployment probes against the running cluster."""
