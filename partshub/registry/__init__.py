"""Registry — locate, cache, and resolve parts registries hosted on GitHub.

The registry layer provides:
- URI parsing: public and enterprise GitHub URLs reduced to one descriptor
- Inventory caching: registry.yaml cached per registry, keyed on commit SHA
- Library resolution: a library's files streamed out at a pinned commit
"""
