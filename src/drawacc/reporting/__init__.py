"""Export of schedule results and observation logs."""
