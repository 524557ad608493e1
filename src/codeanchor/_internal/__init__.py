"""Internal implementation modules. Not part of the public API."""
