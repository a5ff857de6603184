"""devterm -- Interactive terminal control surface for a development server.

This package listens for single-key commands typed into the terminal that
runs a development server session and dispatches them to operations of a
development platform (open on a device, toggle build mode, restart the
bundler, share a preview link, sign in/out). The input state machine keeps
raw keypress dispatch and line-buffered prompts strictly apart while
asynchronous platform operations run in the background.
"""

__version__ = "0.1.0"
