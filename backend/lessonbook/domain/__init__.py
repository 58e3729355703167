"""Pure scheduling logic: interval algebra, time grid and slot generation."""
