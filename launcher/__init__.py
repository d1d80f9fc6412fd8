"""Building, submitting and monitoring the launch."""
