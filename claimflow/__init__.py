"""claimflow: expense claim approval platform."""
