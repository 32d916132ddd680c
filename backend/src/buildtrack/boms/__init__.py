"""Bill-of-materials drafting and approval."""
