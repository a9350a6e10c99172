"""Report service layer."""
