"""
qpf: least and greatest fixed points of quotient polynomial functors.

## Core Design Principle: Containers as Quotients of Shapes

A container functor ``F`` is described by a :class:`Witness`: a polynomial
shape descriptor (tags, and per tag an ordered tuple of child slots) plus a
pair of functions

- ``abstract``: one shape layer -> a value of ``F``,
- ``concretize``: a value of ``F`` -> a shape layer representing it,

with ``abstract(concretize(v)) == v``. Everything else is derived from the
witness:

- :class:`LeastFixedPoint` builds ``Fix[F]``, finite trees modulo structural
  equivalence, with ``mk``, ``dest`` and ``fold``;
- :class:`GreatestFixedPoint` builds ``Cofix[F]``, lazily generated trees, with
  ``corec``, ``dest`` and bisimulation;
- :func:`compose` and :func:`quotient` build new witnesses from old ones.

## Example

```python
from qpf import LeastFixedPoint, PolynomialWitness, TableShape

shape = TableShape(table={"leaf": (), "node": ("left", "right")})
trees = LeastFixedPoint(witness=PolynomialWitness(descriptor=shape))

leaf = trees.mk(shape.instance("leaf"))
node = trees.mk(shape.instance("node", (leaf, leaf)))

count_leaves = trees.fold(
    lambda layer: 1 if layer.tag == "leaf" else sum(layer.values)
)
count_leaves(node)  # 2
```
"""

from qpf.canonical import canonicalize, equivalent, recurse_with
from qpf.cofix import (
    BisimulationResult,
    BisimulationStatus,
    Cofix,
    GreatestFixedPoint,
)
from qpf.compose import ComposedShape, ComposedWitness, compose
from qpf.fix import Fix, LeastFixedPoint
from qpf.functor import FunctionWitness, Witness
from qpf.functors import (
    Bag,
    ListWitness,
    OptionWitness,
    PairWitness,
    PolynomialWitness,
    Some,
    StreamWitness,
    bag,
    bag_witness,
)
from qpf.infinite import InfiniteTree, corecurse
from qpf.quotient import QuotientWitness, quotient
from qpf.shape import (
    ArityShape,
    Children,
    Shape,
    ShapeDescriptor,
    Slot,
    TableShape,
    Tag,
    UniformShape,
)
from qpf.tree import FiniteTree, build, destruct, recurse

__all__ = [
    "ArityShape",
    "Bag",
    "BisimulationResult",
    "BisimulationStatus",
    "Children",
    "Cofix",
    "ComposedShape",
    "ComposedWitness",
    "FiniteTree",
    "Fix",
    "FunctionWitness",
    "GreatestFixedPoint",
    "InfiniteTree",
    "LeastFixedPoint",
    "ListWitness",
    "OptionWitness",
    "PairWitness",
    "PolynomialWitness",
    "QuotientWitness",
    "Shape",
    "ShapeDescriptor",
    "Slot",
    "Some",
    "StreamWitness",
    "TableShape",
    "Tag",
    "UniformShape",
    "Witness",
    "bag",
    "bag_witness",
    "build",
    "canonicalize",
    "compose",
    "corecurse",
    "destruct",
    "equivalent",
    "quotient",
    "recurse",
    "recurse_with",
]
