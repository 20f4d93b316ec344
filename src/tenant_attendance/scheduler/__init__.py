"""Background jobs: per-tenant absentee timers and the nightly sweep."""
