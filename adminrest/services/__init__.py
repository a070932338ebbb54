"""Admin services: filter compilation, CSV conversion, import and the resource controller."""
