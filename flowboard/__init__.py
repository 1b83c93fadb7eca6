"""
FlowBoard - A tiny visual workflow interpreter.

Assemble a graph of start, task, decision and end nodes, then run it
step by step while watching the active node, completed nodes and
variable bindings. Graph edits support undo/redo.
"""

__version__ = "1.0.0"
