"""
clickchess package.

Components:
- selection/highlights/turn_gate: click-driven move entry, square highlights and input gating
- orchestrator/engine_session: asynchronous opponent turns against Stockfish or a random mover
- position_store/rules: current position and history over python-chess
- game: one session controller wiring the above; assistant: chat bridge reading its snapshot
"""
# Package exports are intentionally minimal; import modules directly as needed.
