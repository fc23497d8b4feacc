"""nvimcfg: parse, patch, validate and order Neovim Lua configuration."""

__version__ = "0.3.0"
