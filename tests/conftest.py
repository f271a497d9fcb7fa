"""
Shared fixtures: builders for Kubernetes client models
"""

from datetime import datetime, timezone

import pytest
from kubernetes import client


def _make_node(name='node-1', labels=None, capacity=None, allocatable=None):
    return client.V1Node(
        metadata=client.V1ObjectMeta(name=name, labels=labels),
        status=client.V1NodeStatus(
            capacity=capacity,
            allocatable=allocatable if allocatable is not None else capacity,
        ),
    )


def _make_pod(name='pod', requests=None, owner_kind=None, annotations=None,
              deletion_timestamp=None, grace_period=None):
    """requests is a dict, or a list of dicts for multi-container pods"""
    if requests is None or isinstance(requests, dict):
        requests = [requests or {}]
    owners = None
    if owner_kind:
        owners = [client.V1OwnerReference(
            api_version='apps/v1', kind=owner_kind, name=f'{name}-owner', uid='uid-1', controller=True
        )]
    return client.V1Pod(
        metadata=client.V1ObjectMeta(
            name=name,
            annotations=annotations,
            owner_references=owners,
            deletion_timestamp=deletion_timestamp,
        ),
        spec=client.V1PodSpec(
            containers=[
                client.V1Container(name=f'c{i}', resources=client.V1ResourceRequirements(requests=req))
                for i, req in enumerate(requests)
            ],
            termination_grace_period_seconds=grace_period,
        ),
    )


@pytest.fixture
def make_node():
    return _make_node


@pytest.fixture
def make_pod():
    return _make_pod


@pytest.fixture
def now():
    return datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
