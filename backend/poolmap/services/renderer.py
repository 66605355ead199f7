"""
Bubble chart render instructions.

`build_render_instructions(pools, current_leader_id, dark_mode)` is a pure
function: it turns the cached pools and the poller's current leader into a
complete, engine-independent description of the chart:
- one packed circle per pool (area proportional to live stake, colored by
  blocks minted on the viridis scale)
- labels, legend and zoom limits
- the slot leader highlight (starburst rings, pulse rings, glow, shimmer)

Any client (SVG, canvas, a test) can draw from it without recomputing
layout. Pools without a stake amount or without metadata are left out of the
layout entirely.
"""
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

from matplotlib import colormaps
from matplotlib.colors import to_hex

from ..models import StakePool, lovelace_to_ada
from .circle_pack import pack_values

CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 800
LEGEND_MARGIN = 60  # vertical space reserved below the packed area
PACK_PADDING = 3

LEGEND_WIDTH = 200
LEGEND_HEIGHT = 20
LEGEND_STOPS = 10

DEFAULT_OPACITY = 0.8
ZOOM_SCALE_EXTENT = (0.5, 5.0)
COLOR_SCHEME = "viridis"

MAX_LABEL_LENGTH = 30
TRUNCATED_LABEL_LENGTH = 27

LEADER_RING_COLORS = {
    True: ("#ffffff", "#00ffff", "#ff00ff"),
    False: ("#ff0000", "#ffff00", "#ff8c00"),
}


@dataclass
class NodeLabel:
    """Text block drawn inside a bubble."""
    text: str
    domain: str
    homepage: str
    x: float
    y: float
    width: float
    height: float
    font_size: float


@dataclass
class PoolNode:
    """One packed circle."""
    id: str
    name: str
    ticker: str
    homepage: str
    value: float  # live stake in ADA
    blocks: int
    x: float
    y: float
    r: float
    fill: str
    label: NodeLabel
    opacity: float = DEFAULT_OPACITY
    stroke: Optional[str] = None
    stroke_width: float = 0
    is_leader: bool = False
    hover_enabled: bool = True


@dataclass
class HoverStyle:
    """Applied to non-leader nodes under the pointer."""
    opacity: float
    stroke: str
    stroke_width: float


@dataclass
class LegendStop:
    offset: float  # percent
    color: str


@dataclass
class Legend:
    x: float
    y: float
    width: float
    height: float
    stops: List[LegendStop]
    min_label: str
    max_label: str
    text_color: str
    border_color: str


@dataclass
class StarburstRing:
    """Dashed ring rotating continuously around the leader."""
    radius: float
    color: str
    rotation_ms: int
    direction: int  # 1 clockwise, -1 counter-clockwise
    stroke_width: float = 3
    dasharray: str = "5,5"
    opacity: float = 0.9


@dataclass
class PulseRing:
    """Ring that grows and fades out, then restarts."""
    start_radius: float
    end_radius: float
    color: str
    duration_ms: int
    stroke_width: float = 2
    start_opacity: float = 0.7
    end_opacity: float = 0.0


@dataclass
class GlowFilter:
    id: str = "enhanced-glow"
    blur_std_deviations: Tuple[float, ...] = (8, 4)


@dataclass
class Shimmer:
    """Ring over the leader whose opacity oscillates between min and max."""
    radius: float
    color: str
    stroke_width: float = 3
    initial_opacity: float = 0.5
    min_opacity: float = 0.2
    max_opacity: float = 0.8
    half_period_ms: int = 1000


@dataclass
class LeaderHighlight:
    pool_id: str
    cx: float
    cy: float
    r: float
    stroke: str
    starbursts: List[StarburstRing]
    pulses: List[PulseRing]
    glow: GlowFilter
    shimmer: Shimmer
    stroke_width: float = 5
    opacity: float = 1.0


@dataclass
class TooltipTheme:
    background: str
    color: str
    border: str
    box_shadow: str


@dataclass
class ZoomBehavior:
    min_scale: float = ZOOM_SCALE_EXTENT[0]
    max_scale: float = ZOOM_SCALE_EXTENT[1]
    constrain_pan: bool = False


@dataclass
class Tooltip:
    name: str
    ticker: str
    stake: int  # whole ADA
    blocks: int
    is_leader: bool

    @property
    def lines(self) -> List[str]:
        lines = [
            self.name,
            f"Ticker: {self.ticker}",
            f"Stake: {self.stake:,} ADA",
            f"Blocks Minted: {self.blocks:,}",
        ]
        if self.is_leader:
            lines.append("Current Slot Leader!")
        return lines


@dataclass
class RenderInstructions:
    width: int
    height: int
    dark_mode: bool
    nodes: List[PoolNode]
    legend: Legend
    hover: HoverStyle
    tooltip_theme: TooltipTheme
    zoom: ZoomBehavior = field(default_factory=ZoomBehavior)
    highlight: Optional[LeaderHighlight] = None
    current_leader_id: Optional[str] = None
    max_blocks: int = 0

    def node(self, pool_id: str) -> Optional[PoolNode]:
        for node in self.nodes:
            if node.id == pool_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ColorScale:
    """Sequential viridis scale over [0, max_blocks]."""

    def __init__(self, max_blocks: int):
        self.max_blocks = max_blocks
        self._cmap = colormaps[COLOR_SCHEME]

    def __call__(self, blocks: float) -> str:
        # A degenerate domain maps everything to the midpoint
        if self.max_blocks == 0:
            t = 0.5
        else:
            t = min(1.0, max(0.0, blocks / self.max_blocks))
        return to_hex(self._cmap(t))


def domain_from_url(url: str) -> str:
    """Hostname of a homepage URL without a leading www.

    A scheme is assumed when missing; unparsable input is returned unchanged.
    """
    with_scheme = url if url.startswith("http") else f"https://{url}"
    try:
        hostname = urlsplit(with_scheme).hostname
    except ValueError:
        return url
    if not hostname:
        return url
    return hostname[4:] if hostname.startswith("www.") else hostname


def truncate_label(name: str) -> str:
    if len(name) > MAX_LABEL_LENGTH:
        return name[:TRUNCATED_LABEL_LENGTH] + "..."
    return name


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def is_renderable(pool: StakePool) -> bool:
    """A pool enters the layout only with both a stake amount and metadata."""
    return bool(pool.live_stake) and pool.metadata is not None


def build_tooltip(node: PoolNode, current_leader_id: Optional[str]) -> Tooltip:
    """Tooltip contents for a hovered node."""
    return Tooltip(
        name=node.name,
        ticker=node.ticker,
        stake=round_half_up(node.value),
        blocks=node.blocks,
        is_leader=node.id == current_leader_id,
    )


def _build_nodes(pools: Iterable[StakePool]) -> List[PoolNode]:
    records = [
        (pool, lovelace_to_ada(pool.live_stake))
        for pool in pools
        if is_renderable(pool)
    ]
    records.sort(key=lambda item: item[1], reverse=True)

    circles = pack_values(
        [value for _, value in records],
        CANVAS_WIDTH,
        CANVAS_HEIGHT - LEGEND_MARGIN,
        padding=PACK_PADDING,
    )

    nodes = []
    for (pool, value), circle in zip(records, circles):
        metadata = pool.metadata
        name = metadata.name or "Unknown"
        label = NodeLabel(
            text=truncate_label(name),
            domain=domain_from_url(metadata.homepage) if metadata.homepage else "",
            homepage=metadata.homepage,
            x=circle.x - circle.r * 0.8,
            y=circle.y - circle.r * 0.3,
            width=circle.r * 1.6,
            height=circle.r * 0.6,
            font_size=max(8.0, min(circle.r / 5, 14.0)),
        )
        nodes.append(PoolNode(
            id=pool.pool_id,
            name=name,
            ticker=metadata.ticker,
            homepage=metadata.homepage,
            value=value,
            blocks=pool.blocks_minted,
            x=circle.x,
            y=circle.y,
            r=circle.r,
            fill="",
            label=label,
        ))
    return nodes


def _build_legend(color_scale: ColorScale, dark_mode: bool) -> Legend:
    max_blocks = color_scale.max_blocks
    stops = [
        LegendStop(
            offset=(i / (LEGEND_STOPS - 1)) * 100,
            color=color_scale(max_blocks * (i / (LEGEND_STOPS - 1))),
        )
        for i in range(LEGEND_STOPS)
    ]
    return Legend(
        x=(CANVAS_WIDTH - LEGEND_WIDTH) / 2,
        y=CANVAS_HEIGHT - 30,
        width=LEGEND_WIDTH,
        height=LEGEND_HEIGHT,
        stops=stops,
        min_label="0 blocks",
        max_label=f"{max_blocks:,} blocks",
        text_color="#fff" if dark_mode else "#333",
        border_color="#555" if dark_mode else "#ddd",
    )


def build_leader_highlight(node: PoolNode, dark_mode: bool) -> LeaderHighlight:
    """Effects drawn around the current slot leader's circle."""
    colors = LEADER_RING_COLORS[dark_mode]
    r = node.r

    starbursts = [
        StarburstRing(
            radius=r * (1.3 + i * 0.2),
            color=color,
            rotation_ms=1500 - i * 300,
            direction=-1 if i % 2 else 1,
        )
        for i, color in enumerate(colors)
    ]
    pulses = [
        PulseRing(
            start_radius=r * (1.2 + i * 0.15),
            end_radius=r * (1.8 + i * 0.2),
            color=color,
            duration_ms=1000 + i * 200,
        )
        for i, color in enumerate(colors)
    ]

    return LeaderHighlight(
        pool_id=node.id,
        cx=node.x,
        cy=node.y,
        r=r,
        stroke="#ffffff" if dark_mode else "#ff0000",
        starbursts=starbursts,
        pulses=pulses,
        glow=GlowFilter(),
        shimmer=Shimmer(radius=r, color="#ffffff" if dark_mode else "#ffff00"),
    )


def build_render_instructions(
    pools: Iterable[StakePool],
    current_leader_id: Optional[str] = None,
    dark_mode: bool = False,
) -> RenderInstructions:
    """Compute the full chart description for a pool set and leader."""
    nodes = _build_nodes(pools)

    max_blocks = max((node.blocks for node in nodes), default=0)
    color_scale = ColorScale(max_blocks)
    for node in nodes:
        node.fill = color_scale(node.blocks)

    highlight = None
    leader = next((node for node in nodes if node.id == current_leader_id), None)
    if leader is not None:
        highlight = build_leader_highlight(leader, dark_mode)
        leader.is_leader = True
        leader.hover_enabled = False
        leader.opacity = highlight.opacity
        leader.stroke = highlight.stroke
        leader.stroke_width = highlight.stroke_width
        # Draw the leader last so its effects sit on top
        nodes.remove(leader)
        nodes.append(leader)

    return RenderInstructions(
        width=CANVAS_WIDTH,
        height=CANVAS_HEIGHT,
        dark_mode=dark_mode,
        nodes=nodes,
        legend=_build_legend(color_scale, dark_mode),
        hover=HoverStyle(
            opacity=1.0,
            stroke="#fff" if dark_mode else "#333",
            stroke_width=2,
        ),
        tooltip_theme=TooltipTheme(
            background="rgba(0, 0, 0, 0.9)" if dark_mode else "white",
            color="#fff" if dark_mode else "#333",
            border=f"1px solid {'#555' if dark_mode else '#ddd'}",
            box_shadow="0 2px 4px rgba(0,0,0,0.3)" if dark_mode else "0 2px 4px rgba(0,0,0,0.1)",
        ),
        highlight=highlight,
        current_leader_id=current_leader_id,
        max_blocks=max_blocks,
    )
