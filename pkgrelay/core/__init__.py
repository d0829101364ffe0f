"""pkgrelay core: path templates, rule registry, router, backend client and workflows."""
