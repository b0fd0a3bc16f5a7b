"""unitdc_console — interactive console for a unit-aware desk calculator.

Keeps a notebook-style transcript of input, output, message and error cells,
composes calculator tokens from a virtual keyboard, and submits the active
input cell to a pluggable calculation engine.

Usage:
    python -m unitdc_console repl                 # Interactive session
    python -m unitdc_console eval "3 4 + p"        # One-shot evaluation
    python -m unitdc_console keys                 # Show keyboard layout
"""
