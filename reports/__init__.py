"""Console and file reporting for directory aggregation results."""
