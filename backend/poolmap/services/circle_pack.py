"""
Circle packing for the bubble chart.

Front-chain sibling packing (Wang et al.) followed by a minimal enclosing
circle (Welzl's algorithm on the front chain), the same approach as
d3-hierarchy's `pack`. Only flat hierarchies (one root, many leaves) are
needed here.
"""
import math
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

# Fixed seed: identical inputs always produce identical layouts
PACK_SEED = 0x5EED


@dataclass
class Circle:
    r: float
    x: float = 0.0
    y: float = 0.0


class _ChainNode:
    __slots__ = ("circle", "next", "previous")

    def __init__(self, circle: Circle):
        self.circle = circle
        self.next: Optional["_ChainNode"] = None
        self.previous: Optional["_ChainNode"] = None


def _place(b: Circle, a: Circle, c: Circle) -> None:
    """Position c tangent to both a and b."""
    dx = b.x - a.x
    dy = b.y - a.y
    d2 = dx * dx + dy * dy
    if d2:
        a2 = (a.r + c.r) ** 2
        b2 = (b.r + c.r) ** 2
        if a2 > b2:
            x = (d2 + b2 - a2) / (2 * d2)
            y = math.sqrt(max(0.0, b2 / d2 - x * x))
            c.x = b.x - x * dx - y * dy
            c.y = b.y - x * dy + y * dx
        else:
            x = (d2 + a2 - b2) / (2 * d2)
            y = math.sqrt(max(0.0, a2 / d2 - x * x))
            c.x = a.x + x * dx - y * dy
            c.y = a.y + x * dy + y * dx
    else:
        c.x = a.x + c.r
        c.y = a.y


def _intersects(a: Circle, b: Circle) -> bool:
    dr = a.r + b.r - 1e-6
    dx = b.x - a.x
    dy = b.y - a.y
    return dr > 0 and dr * dr > dx * dx + dy * dy


def _score(node: _ChainNode) -> float:
    """Squared distance from the origin to the weighted midpoint of node and node.next."""
    a = node.circle
    b = node.next.circle
    ab = a.r + b.r
    if not ab:
        return a.x * a.x + a.y * a.y
    dx = (a.x * b.r + b.x * a.r) / ab
    dy = (a.y * b.r + b.y * a.r) / ab
    return dx * dx + dy * dy


def pack_siblings(circles: Sequence[Circle], rng: random.Random) -> float:
    """Pack circles in place around the origin.

    Returns:
        Radius of the circle enclosing all of them
    """
    n = len(circles)
    if not n:
        return 0.0

    a = circles[0]
    a.x, a.y = 0.0, 0.0
    if n == 1:
        return a.r

    b = circles[1]
    a.x = -b.r
    b.x, b.y = a.r, 0.0
    if n == 2:
        return a.r + b.r

    _place(b, a, circles[2])

    # Initialize the front chain with the first three circles
    na, nb, nc = _ChainNode(a), _ChainNode(b), _ChainNode(circles[2])
    na.next = nc.previous = nb
    nb.next = na.previous = nc
    nc.next = nb.previous = na

    i = 3
    while i < n:
        _place(na.circle, nb.circle, circles[i])
        nc = _ChainNode(circles[i])

        # Find the closest intersecting circle on the front chain, if any
        j, k = nb.next, na.previous
        sj, sk = nb.circle.r, na.circle.r
        collided = False
        while True:
            if sj <= sk:
                if _intersects(j.circle, nc.circle):
                    nb = j
                    na.next, nb.previous = nb, na
                    collided = True
                    break
                sj += j.circle.r
                j = j.next
            else:
                if _intersects(k.circle, nc.circle):
                    na = k
                    na.next, nb.previous = nb, na
                    collided = True
                    break
                sk += k.circle.r
                k = k.previous
            if j is k.next:
                break

        if collided:
            # Retry the same circle against the shortened chain
            continue

        # Insert between a and b
        nc.previous, nc.next = na, nb
        na.next = nc
        nb.previous = nc
        nb = nc

        # Move a to the chain pair closest to the centroid
        best = _score(na)
        node = nc.next
        while node is not nb:
            candidate = _score(node)
            if candidate < best:
                na, best = node, candidate
            node = node.next
        nb = na.next
        i += 1

    chain = [nb.circle]
    node = nb.next
    while node is not nb:
        chain.append(node.circle)
        node = node.next
    enclosing = pack_enclose(chain, rng)

    for circle in circles:
        circle.x -= enclosing.x
        circle.y -= enclosing.y
    return enclosing.r


def pack_enclose(circles: Sequence[Circle], rng: random.Random) -> Circle:
    """Smallest circle enclosing all circles (randomized incremental)."""
    shuffled = list(circles)
    rng.shuffle(shuffled)

    basis: List[Circle] = []
    enclosing: Optional[Circle] = None
    i = 0
    while i < len(shuffled):
        p = shuffled[i]
        if enclosing is not None and _encloses_weak(enclosing, p):
            i += 1
        else:
            basis = _extend_basis(basis, p)
            enclosing = _enclose_basis(basis)
            i = 0
    return enclosing if enclosing is not None else Circle(r=0.0)


def _extend_basis(basis: List[Circle], p: Circle) -> List[Circle]:
    if _encloses_weak_all(p, basis):
        return [p]

    for i in range(len(basis)):
        if _encloses_not(p, basis[i]) and _encloses_weak_all(_enclose_basis2(basis[i], p), basis):
            return [basis[i], p]

    for i in range(len(basis) - 1):
        for j in range(i + 1, len(basis)):
            if (
                _encloses_not(_enclose_basis2(basis[i], basis[j]), p)
                and _encloses_not(_enclose_basis2(basis[i], p), basis[j])
                and _encloses_not(_enclose_basis2(basis[j], p), basis[i])
                and _encloses_weak_all(_enclose_basis3(basis[i], basis[j], p), basis)
            ):
                return [basis[i], basis[j], p]

    raise ValueError("Could not extend enclosing basis")


def _encloses_not(a: Circle, b: Circle) -> bool:
    dr = a.r - b.r
    dx = b.x - a.x
    dy = b.y - a.y
    return dr < 0 or dr * dr < dx * dx + dy * dy


def _encloses_weak(a: Circle, b: Circle) -> bool:
    dr = a.r - b.r + max(a.r, b.r, 1.0) * 1e-9
    dx = b.x - a.x
    dy = b.y - a.y
    return dr > 0 and dr * dr > dx * dx + dy * dy


def _encloses_weak_all(a: Circle, basis: Sequence[Circle]) -> bool:
    return all(_encloses_weak(a, b) for b in basis)


def _enclose_basis(basis: Sequence[Circle]) -> Circle:
    if len(basis) == 1:
        return Circle(r=basis[0].r, x=basis[0].x, y=basis[0].y)
    if len(basis) == 2:
        return _enclose_basis2(basis[0], basis[1])
    return _enclose_basis3(basis[0], basis[1], basis[2])


def _enclose_basis2(a: Circle, b: Circle) -> Circle:
    x21 = b.x - a.x
    y21 = b.y - a.y
    r21 = b.r - a.r
    length = math.sqrt(x21 * x21 + y21 * y21)
    if not length:
        # Concentric: the larger circle encloses both
        big = a if a.r >= b.r else b
        return Circle(r=big.r, x=big.x, y=big.y)
    return Circle(
        x=(a.x + b.x + x21 / length * r21) / 2,
        y=(a.y + b.y + y21 / length * r21) / 2,
        r=(length + a.r + b.r) / 2,
    )


def _enclose_basis3(a: Circle, b: Circle, c: Circle) -> Circle:
    x1, y1, r1 = a.x, a.y, a.r
    x2, y2, r2 = b.x, b.y, b.r
    x3, y3, r3 = c.x, c.y, c.r
    a2 = x1 - x2
    a3 = x1 - x3
    b2 = y1 - y2
    b3 = y1 - y3
    c2 = r2 - r1
    c3 = r3 - r1
    d1 = x1 * x1 + y1 * y1 - r1 * r1
    d2 = d1 - x2 * x2 - y2 * y2 + r2 * r2
    d3 = d1 - x3 * x3 - y3 * y3 + r3 * r3
    ab = a3 * b2 - a2 * b3
    if not ab:
        # Collinear centers have no tangent solution; NaN fails every enclosure test
        return Circle(r=math.nan, x=math.nan, y=math.nan)
    xa = (b2 * d3 - b3 * d2) / (ab * 2) - x1
    xb = (b3 * c2 - b2 * c3) / ab
    ya = (a3 * d2 - a2 * d3) / (ab * 2) - y1
    yb = (a2 * c3 - a3 * c2) / ab
    qa = xb * xb + yb * yb - 1
    qb = 2 * (r1 + xa * xb + ya * yb)
    qc = xa * xa + ya * ya - r1 * r1
    discriminant = qb * qb - 4 * qa * qc
    if abs(qa) > 1e-6 and discriminant >= 0:
        r = -(qb + math.sqrt(discriminant)) / (2 * qa)
    elif abs(qa) <= 1e-6 and qb:
        r = -(qc / qb)
    else:
        return Circle(r=math.nan, x=math.nan, y=math.nan)
    return Circle(x=x1 + xa + xb * r, y=y1 + ya + yb * r, r=r)


def _pack_children(children: Sequence[Circle], padding: float, rng: random.Random) -> float:
    """Pack children with padding added to each radius; returns the parent radius."""
    if padding:
        for child in children:
            child.r += padding
    enclosing = pack_siblings(children, rng)
    if padding:
        for child in children:
            child.r -= padding
    return enclosing + padding


def pack_values(
    values: Sequence[float],
    width: float,
    height: float,
    padding: float = 0.0,
) -> List[Circle]:
    """Lay out one circle per value inside a width x height box.

    Circle area is proportional to the value. The returned circles are in
    the same order as `values`, in box coordinates (origin top-left).
    """
    if not values:
        return []

    rng = random.Random(PACK_SEED)
    leaves = [Circle(r=math.sqrt(max(0.0, v))) for v in values]
    side = min(width, height)

    # Unpadded first pass gives the root radius, which converts the padding
    # from canvas pixels into layout units for the second pass
    root_r = _pack_children(leaves, 0.0, rng)
    if root_r > 0:
        root_r = _pack_children(leaves, padding * root_r / side, rng)

    cx, cy = width / 2, height / 2
    if root_r <= 0:
        return [Circle(r=0.0, x=cx, y=cy) for _ in leaves]

    k = side / (2 * root_r)
    for leaf in leaves:
        leaf.x = cx + k * leaf.x
        leaf.y = cy + k * leaf.y
        leaf.r *= k
    return leaves
