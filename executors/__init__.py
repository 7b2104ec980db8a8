"""
Executors package - resolution, fallback, overlay and verification for widget controls
"""
from .locator_resolver import LocatorResolver
from .state_verifier import StateVerifier
from .strategy_chain import StrategyChainExecutor, fallback_chain, choice_chain, click_chain
from .overlay_gate import OverlayGate

__all__ = [
    'LocatorResolver',
    'StateVerifier',
    'StrategyChainExecutor',
    'OverlayGate',
    'fallback_chain',
    'choice_chain',
    'click_chain'
]
