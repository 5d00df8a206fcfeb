"""Formatter strategies: rustfmt (full), builtin (fallback), raw."""
