"""Question routing services: classify, select, dispatch, voice."""
