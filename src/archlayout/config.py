"""
Configuration for sizing, layout and rendering.

Every pixel constant used by a diagram family lives on one of these
dataclasses. Instances are passed explicitly into the sizing and layout
functions, so those functions stay pure functions of their arguments.
"""

from dataclasses import dataclass

from .models import Margin, Spacing


@dataclass(frozen=True)
class FontConfig:
    """Shared font sizes (px) and weights."""

    node_label_size: float = 13
    node_label_weight: int = 500
    edge_label_size: float = 11
    edge_label_weight: int = 400
    group_header_size: float = 12
    group_header_weight: int = 600
    # Label pills get this much room around the text.
    edge_label_pad_x: float = 8
    edge_label_pad_y: float = 6


@dataclass(frozen=True)
class C4Config:
    """Layout constants for C4 diagrams."""

    padding: float = 40
    box_pad_x: float = 16
    box_pad_y: float = 12
    person_width: float = 160
    person_height: float = 180
    min_box_width: float = 160
    min_box_height: float = 80
    line_height: float = 18
    boundary_padding: float = 30
    boundary_header_height: float = 28
    node_spacing: float = 60
    layer_spacing: float = 80
    title_font_size: float = 14
    title_font_weight: int = 600
    desc_font_size: float = 11
    desc_font_weight: int = 400
    tech_font_size: float = 10
    tech_font_weight: int = 400
    fonts: FontConfig = FontConfig()

    def spacing(self) -> Spacing:
        return Spacing(
            node=self.node_spacing,
            rank=self.layer_spacing,
            group_padding=self.boundary_padding,
            group_header=self.boundary_header_height,
            empty_group_width=self.min_box_width,
            empty_group_height=self.min_box_height,
        )

    def margin(self) -> Margin:
        return Margin(self.padding, self.padding)


@dataclass(frozen=True)
class ArchiMateConfig:
    """Layout constants for ArchiMate layered views."""

    padding: float = 40
    min_element_width: float = 120
    element_height: float = 50
    element_pad_x: float = 24
    layer_padding: float = 20
    layer_label_height: float = 24
    node_spacing: float = 40
    layer_spacing: float = 60
    type_indicator_size: float = 9
    type_indicator_weight: int = 400
    # Rank-only edges between layers outweigh any relationship.
    layer_edge_weight: float = 10
    fonts: FontConfig = FontConfig()

    def spacing(self) -> Spacing:
        return Spacing(
            node=self.node_spacing,
            rank=self.layer_spacing,
            group_padding=self.layer_padding,
            group_header=self.layer_label_height,
            empty_group_width=self.min_element_width,
            empty_group_height=self.element_height,
        )

    def margin(self) -> Margin:
        return Margin(self.padding, self.padding)


@dataclass(frozen=True)
class ClassDiagramConfig:
    """Layout constants for class diagrams."""

    padding: float = 40
    box_pad_x: float = 8
    min_width: float = 120
    header_height: float = 32
    annotation_height: float = 14
    member_row_height: float = 20
    compartment_pad_y: float = 8
    member_font_size: float = 11
    name_font_size: float = 13
    name_font_weight: int = 700
    annotation_font_size: float = 10
    annotation_font_weight: int = 500
    node_spacing: float = 40
    layer_spacing: float = 60
    namespace_padding: float = 20
    namespace_header_height: float = 24
    fonts: FontConfig = FontConfig()

    def spacing(self) -> Spacing:
        return Spacing(
            node=self.node_spacing,
            rank=self.layer_spacing,
            group_padding=self.namespace_padding,
            group_header=self.namespace_header_height,
            empty_group_width=self.min_width,
            empty_group_height=self.header_height,
        )

    def margin(self) -> Margin:
        return Margin(self.padding, self.padding)


@dataclass(frozen=True)
class AsciiConfig:
    """
    Constants for character-grid output. All sizes are in cells.

    Attributes:
        use_ascii: Draw with +, -, | instead of Unicode box characters.
        padding_x: Horizontal gap between boxes in a rank.
        padding_y: Vertical gap between ranks.
        group_padding: Padding inside boundaries and layer bands.
        group_header: Rows reserved for a boundary label.
        edge_spacing: Gap between an edge route and its neighbours.
        margin_cells: Blank cells around the drawing.
    """

    use_ascii: bool = False
    padding_x: int = 5
    padding_y: int = 3
    group_padding: int = 2
    group_header: int = 1
    edge_spacing: int = 2
    self_loop: int = 3
    empty_group_width: int = 12
    empty_group_height: int = 4
    margin_cells: int = 1

    def spacing(self) -> Spacing:
        return Spacing(
            node=self.padding_x,
            rank=self.padding_y,
            edge=self.edge_spacing,
            group_padding=self.group_padding,
            group_header=self.group_header,
            empty_group_width=self.empty_group_width,
            empty_group_height=self.empty_group_height,
            self_loop=self.self_loop,
        )

    def margin(self) -> Margin:
        return Margin(self.margin_cells, self.margin_cells)
