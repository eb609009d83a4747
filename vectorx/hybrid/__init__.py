"""Hybrid (dense + sparse) search components.

Primary components:
- ``codec``: dense normalization, sparse conversion, metadata encoding.
- ``serialization``: upsert batch encoding and search response decoding.
- ``fusion``: Reciprocal Rank Fusion of the dense and sparse rankings.
- ``index``: the ``HybridIndex`` handle tying the pieces together.

Guidance:
- Obtain handles through ``VectorX.get_hybrid_index`` rather than building
  them directly.
"""
