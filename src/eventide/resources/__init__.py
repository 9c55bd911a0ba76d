"""Row-store access functions, one module per resource."""
