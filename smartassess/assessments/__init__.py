"""Assessment engines of the SmartAssess backend."""
