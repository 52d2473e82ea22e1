import numpy as np

from ..tools import parse_color


class FixationCross:
    """Cross made of two perpendicular bars centered on the stimulus.

    This object only holds geometry; ``rasterize`` paints it into an RGBA
    layer the size of the stimulus.

    """
    def __init__(self, stimulus_size, size=30, weight=5, color="white"):

        self.stimulus_size = stimulus_size
        self.size = size
        self.weight = weight
        self.color = color

    @classmethod
    def from_config(cls, stimulus_size, params):
        return cls(stimulus_size, params.size, params.weight, params.color)

    @property
    def center(self):
        c = self.stimulus_size / 2
        return c, c

    def segments(self):
        """Endpoints of the horizontal and vertical strokes, (x, y) pixels."""
        cx, cy = self.center
        half = self.size / 2
        horizontal = ((cx - half, cy), (cx + half, cy))
        vertical = ((cx, cy - half), (cx, cy + half))
        return horizontal, vertical

    def rects(self):
        """The two bars as (left, top, width, height) rectangles."""
        cx, cy = self.center
        half, half_w = self.size / 2, self.weight / 2
        return [
            (cx - half, cy - half_w, self.size, self.weight),
            (cx - half_w, cy - half, self.weight, self.size),
        ]

    def rasterize(self):
        """RGBA float layer with the cross drawn at pixel resolution."""
        n = int(round(self.stimulus_size))
        layer = np.zeros((n, n, 4))
        centers = np.arange(n) + .5
        x, y = np.meshgrid(centers, centers)

        inside = np.zeros((n, n), bool)
        for left, top, width, height in self.rects():
            inside |= ((x >= left) & (x < left + width)
                       & (y >= top) & (y < top + height))

        layer[inside] = parse_color(self.color)
        return layer
