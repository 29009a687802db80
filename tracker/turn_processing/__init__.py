"""Pure combat-session transitions.

Initiative ordering, turn/round progression, status-effect countdown and
hit-point edits. Every function takes a session (or participants) and
returns a new value; nothing here touches Redis or FastAPI.
"""
