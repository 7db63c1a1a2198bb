"""wlpop - clipboard history and application launcher popups for Wayland.

Both tools share one engine: a key chord resolver, an optional vim-style
modal input layer, a scored candidate filter and a single-instance daemon
toggled through Unix signals. The daemon runs as an asyncio service and
accepts key events from its frontend over a Unix socket.
"""
