"""Job-level services that need no browser: change detection, donor-list health."""
