from typing import Optional

from ..mp_types import BoundingBox, Candidate, IntensityFrame


class ContrastCandidateLocator:
    """
    Strategy: find square-ish dark silhouettes on a strided lattice.

    A lattice point is a possible tag center when the window around it holds
    both bright and dark pixels. Its extent is then probed along the four
    cardinal rays and kept if the resulting box is big enough and roughly
    square. Cost is bounded by the lattice size, not by image content.
    Rotated markers are boxed by their cardinal extents only.

    Lattice points inside an accepted box are skipped, so a square yields
    one candidate only while its side stays under the ray reach
    (``probe_limit - probe_step``). Larger squares overflow the first box
    and produce overlapping extra candidates.
    """

    def __init__(
        self,
        threshold: int = 128,
        min_tag_size: int = 30,
        stride: int = 10,
        check_radius: int = 15,
        probe_step: int = 5,
        probe_limit: int = 100,
        min_box_size: int = 20,
        max_aspect_skew: float = 0.3,
    ):
        self.threshold = threshold
        self.min_tag_size = min_tag_size
        self.stride = stride
        self.check_radius = check_radius
        self.probe_step = probe_step
        self.probe_limit = probe_limit
        self.min_box_size = min_box_size
        self.max_aspect_skew = max_aspect_skew

    def locate(self, frame: IntensityFrame) -> list[Candidate]:
        candidates: list[Candidate] = []
        margin = self.min_tag_size
        for y in range(margin, frame.height - margin, self.stride):
            for x in range(margin, frame.width - margin, self.stride):
                # one silhouette, one candidate
                if any(c.box.contains(x, y) for c in candidates):
                    continue
                if not self._could_be_center(frame, x, y):
                    continue
                box = self._find_boundaries(frame, x, y)
                if box is not None:
                    candidates.append(Candidate.from_box(box, (x, y)))
        return candidates

    def _could_be_center(self, frame: IntensityFrame, x: int, y: int) -> bool:
        r = self.check_radius
        window = frame.data[max(0, y - r):y + r + 1, max(0, x - r):x + r + 1]
        total = window.size
        if total == 0:
            return False
        bright = int((window > self.threshold).sum())
        ratio = bright / total
        return 0.2 < ratio < 0.8

    def _find_boundaries(self, frame: IntensityFrame, cx: int, cy: int) -> Optional[BoundingBox]:
        data = frame.data
        t = self.threshold
        min_x = max_x = cx
        min_y = max_y = cy

        for radius in range(self.probe_step, self.probe_limit, self.probe_step):
            if cx - radius >= 0 and data[cy, cx - radius] < t:
                min_x = min(min_x, cx - radius)
            if cx + radius < frame.width and data[cy, cx + radius] < t:
                max_x = max(max_x, cx + radius)
            if cy - radius >= 0 and data[cy - radius, cx] < t:
                min_y = min(min_y, cy - radius)
            if cy + radius < frame.height and data[cy + radius, cx] < t:
                max_y = max(max_y, cy + radius)

        w = max_x - min_x
        h = max_y - min_y
        if w > self.min_box_size and h > self.min_box_size and abs(w - h) < w * self.max_aspect_skew:
            return BoundingBox(min_x, max_x, min_y, max_y)
        return None
