from .mp_types import DetectorConfig
from .strategies.preprocess import LumaReduce
from .strategies.locate_candidates import ContrastCandidateLocator
from .strategies.identify import get_resolver
from .strategies.localize_size import ApparentSizeLocalize


class StrategyFactory:
    @staticmethod
    def from_config(config: DetectorConfig):
        config.validate()

        pre = LumaReduce()
        loc = ContrastCandidateLocator()
        ident = get_resolver(config.identity_policy)
        est = ApparentSizeLocalize(config.tag_size_m)

        return pre, loc, ident, est
