"""Browser-facing collectors and the job orchestrator."""
