"""Built-in profile presets (TOML package data)."""
