#!/usr/bin/env python3
"""
Best-effort lookup of the pod consuming a PVC.

The API has no reverse index from claim to pod, so the consumer is inferred
by an ordered list of strategies. The first strategy that names a pod wins:

1. DirectClaimMatch: a pod declares the claim in its volumes.
2. StatefulSetNameMatch: a 'data-<ordinal>-<cluster>-...' claim is mapped to
   pod name prefixes such as '<cluster>-<ordinal>'.
3. SharedTokenMatch: the claim and pod names share a dash-separated token
   longer than 3 characters.
4. RunningWorkloadFallback: a running pod whose name contains a workload
   keyword, else any running pod, else the first pod.

The last strategy always matches, so lookup only fails on an empty namespace.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional, Sequence

from tools.core.errors import PodNotFoundError
from tools.kubernetes.core import PodInfo

logger = logging.getLogger(__name__)

DEFAULT_WORKLOAD_KEYWORDS = ('kafka',)

# Dash-separated tokens this short are too generic to identify a workload
MIN_SHARED_TOKEN_LENGTH = 4


class MatchStrategy(ABC):
    """One tier of consumer inference"""

    name = "base"

    @abstractmethod
    def match(self, claim_name: str, pods: Sequence[PodInfo]) -> Optional[str]:
        """
        Try to pick the consumer pod

        Args:
            claim_name: Name of the PVC
            pods: Pods of the claim's namespace, in API order

        Returns:
            Optional[str]: Pod name, or None if this strategy has no opinion
        """


class DirectClaimMatch(MatchStrategy):
    name = "direct"

    def match(self, claim_name: str, pods: Sequence[PodInfo]) -> Optional[str]:
        for pod in pods:
            if claim_name in pod.claim_names:
                logger.info(f"Found pod '{pod.name}' directly using the PVC")
                return pod.name
        return None


class StatefulSetNameMatch(MatchStrategy):
    """Infer the pod from volume claim template naming, e.g. data-0-kafka-kafka-pool-0"""

    name = "statefulset-naming"

    @staticmethod
    def candidate_prefixes(claim_name: str) -> List[str]:
        """
        Derive pod name prefixes from a 'data-<ordinal>-<cluster>-...' claim

        Returns:
            List[str]: Prefixes in priority order, without duplicates
        """
        if not claim_name.startswith("data-"):
            return []
        parts = claim_name.split("-")
        if len(parts) < 4:
            return []

        ordinal, cluster, component = parts[1], parts[2], parts[3]
        patterns = [
            f"{cluster}-{ordinal}",
            f"{cluster}-{component}-{ordinal}",
            f"{cluster}-kafka-{ordinal}",
            f"{cluster}-zookeeper-{ordinal}",
        ]
        return list(dict.fromkeys(patterns))

    def match(self, claim_name: str, pods: Sequence[PodInfo]) -> Optional[str]:
        patterns = self.candidate_prefixes(claim_name)
        if not patterns:
            return None
        logger.debug(f"Looking for pods with patterns: {patterns}")
        for pattern in patterns:
            for pod in pods:
                if pod.name.startswith(pattern):
                    logger.info(f"Found pod '{pod.name}' matching pattern '{pattern}'")
                    return pod.name
        return None


class SharedTokenMatch(MatchStrategy):
    name = "shared-token"

    def match(self, claim_name: str, pods: Sequence[PodInfo]) -> Optional[str]:
        claim_tokens = [t for t in claim_name.split("-") if len(t) >= MIN_SHARED_TOKEN_LENGTH]
        if not claim_tokens:
            return None
        for pod in pods:
            pod_tokens = set(pod.name.split("-"))
            for token in claim_tokens:
                if token in pod_tokens:
                    logger.info(f"Found pod '{pod.name}' sharing common part '{token}' with PVC")
                    return pod.name
        return None


class RunningWorkloadFallback(MatchStrategy):
    name = "fallback"

    def __init__(self, keywords: Sequence[str] = DEFAULT_WORKLOAD_KEYWORDS):
        self.keywords = [k.lower() for k in keywords]

    def match(self, claim_name: str, pods: Sequence[PodInfo]) -> Optional[str]:
        for pod in pods:
            lowered = pod.name.lower()
            if pod.is_running and any(k in lowered for k in self.keywords):
                logger.info(f"Using pod '{pod.name}' as it contains a workload keyword in the name")
                return pod.name

        for pod in pods:
            if pod.is_running:
                logger.info(f"Using pod '{pod.name}' as fallback (first running pod found)")
                return pod.name

        if pods:
            logger.info(f"Using pod '{pods[0].name}' as last resort")
            return pods[0].name
        return None


def default_strategies(keywords: Sequence[str] = DEFAULT_WORKLOAD_KEYWORDS) -> List[MatchStrategy]:
    return [
        DirectClaimMatch(),
        StatefulSetNameMatch(),
        SharedTokenMatch(),
        RunningWorkloadFallback(keywords),
    ]


class PodMatcher:
    """Finds the pod most likely to be consuming a PVC"""

    def __init__(self, kube_client, config_data: Optional[Dict[str, Any]] = None,
                 strategies: Optional[List[MatchStrategy]] = None):
        """
        Initialize the matcher

        Args:
            kube_client: Object providing list_pods(namespace)
            config_data: Configuration data (uses performance.workload_keywords)
            strategies: Strategy list overriding the default tiers
        """
        self.kube_client = kube_client
        perf_config = (config_data or {}).get('performance', {})
        keywords = perf_config.get('workload_keywords', DEFAULT_WORKLOAD_KEYWORDS)
        self.strategies = strategies if strategies is not None else default_strategies(keywords)

    def find_consumer(self, namespace: str, claim_name: str) -> str:
        """
        Find the pod using a PVC, or the best guess

        Args:
            namespace: Namespace of the claim
            claim_name: Name of the claim

        Returns:
            str: Pod name

        Raises:
            PodNotFoundError: If the namespace has no pods
        """
        pods = self.kube_client.list_pods(namespace)
        if not pods:
            raise PodNotFoundError(f"no pods found in namespace '{namespace}'")

        logger.info(f"Searching for pod using PVC '{claim_name}' in namespace '{namespace}'...")
        for strategy in self.strategies:
            pod_name = strategy.match(claim_name, pods)
            if pod_name is not None:
                logger.debug(f"Consumer of {namespace}/{claim_name} resolved by '{strategy.name}' strategy")
                return pod_name
            if strategy.name == DirectClaimMatch.name:
                logger.info("No pod found directly using the PVC. Trying to infer pod based on naming patterns...")

        raise PodNotFoundError(f"no pod could be matched to PVC '{claim_name}' in namespace '{namespace}'")
