"""TicketForge: design analysis to implementation tickets."""

__version__ = "0.1.0"
