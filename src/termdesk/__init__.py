"""termdesk -- Shared simulated terminal sessions.

Several participants attach to a named session and watch one command
and output stream together. Commands run against an in-memory simulated
filesystem; no real process or host file is ever touched.
"""

__version__ = "0.1.0"
