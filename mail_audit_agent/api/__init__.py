"""HTTP API: chat webhook, middleware and card rendering."""
