"""SmartAssess test suite."""
