"""Understand the inheritance chains of the services in the schema."""
from typing import (
    Sequence,
    Optional,
    Set,
    Final,
    Mapping,
    MutableMapping,
    List,
    Tuple,
)

import sortedcontainers
from icontract import require, ensure

from idl_codegen.common import Error, Identifier
from idl_codegen.model import _types


def first_not_in_topological_order(
    services: Sequence[_types.Service],
) -> Optional[_types.Service]:
    """
    Verify that ``services`` are topologically sorted.

    :return: The first service which is not fitting the expected order.
    """
    observed = set()  # type: Set[_types.Service]
    for service in services:
        if service.parent is not None and service.parent not in observed:
            return service

        observed.add(service)

    return None


class ServiceOntology:
    """Provide the ancestors of the services."""

    #: Topologically sorted services, parents before their children
    services: Final[Sequence[_types.Service]]

    #: Map service 🠒 ancestors, the root of the chain first
    _ancestors_of: Final[Mapping[_types.Service, Sequence[_types.Service]]]

    # fmt: off
    @require(
        lambda services:
        first_not_in_topological_order(services) is None
    )
    @require(
        lambda services: len(set(services)) == len(services),
        "Unique services in the topological sort",
    )
    @ensure(
        lambda self:
        all(
            first_not_in_topological_order(ancestors) is None
            for ancestors in self._ancestors_of.values()
        )
    )
    # fmt: on
    def __init__(self, services: Sequence[_types.Service]) -> None:
        """Initialize with the given values and pre-compute the ancestors."""
        self.services = services

        ancestors_of = dict()  # type: MutableMapping[_types.Service, List[_types.Service]]

        for service in services:
            if service.parent is None:
                ancestors_of[service] = []
                continue

            assert service.parent in ancestors_of, (
                f"Expected to process the parent of the service {service.name} "
                f"before (due to topological sort), "
                f"but the parent service {service.parent.name} has not been processed"
            )

            ancestors_of[service] = ancestors_of[service.parent] + [service.parent]

        self._ancestors_of = ancestors_of

    def list_ancestors(self, service: _types.Service) -> Sequence[_types.Service]:
        """Retrieve the ancestors of the ``service``, the root of the chain first."""
        result = self._ancestors_of.get(service, None)
        if result is None:
            raise KeyError(
                f"The ancestors of the service {service.name} have not been "
                f"precomputed."
            )

        return result

    def list_functions(
        self, service: _types.Service
    ) -> List[Tuple[_types.Service, _types.Function]]:
        """
        List all the functions callable on the ``service``.

        The inherited functions come first. Each function is paired with the
        service which declares it.
        """
        result = []  # type: List[Tuple[_types.Service, _types.Function]]
        for declaring in list(self.list_ancestors(service)) + [service]:
            for function in declaring.functions:
                result.append((declaring, function))

        return result


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _topologically_sort(
    services: Sequence[_types.Service],
) -> Tuple[Optional[List[_types.Service]], Optional[_types.Service]]:
    """
    Sort topologically all the ``services``.

    :return: topologically sorted services, or a service in a cycle
    """
    # See https://en.wikipedia.org/wiki/Topological_sorting#Depth-first%20search
    # We use sorted containers to avoid non-deterministic behavior.

    result = []  # type: List[_types.Service]

    without_permanent_marks = sortedcontainers.SortedSet(
        services, key=lambda a_service: a_service.name
    )  # type: sortedcontainers.SortedSet[_types.Service]

    permanent_marks = sortedcontainers.SortedSet(
        key=lambda a_service: a_service.name
    )  # type: sortedcontainers.SortedSet[_types.Service]

    temporary_marks = sortedcontainers.SortedSet(
        key=lambda a_service: a_service.name
    )  # type: sortedcontainers.SortedSet[_types.Service]

    visited_more_than_once = None  # type: Optional[_types.Service]

    def visit(service: _types.Service) -> None:
        nonlocal visited_more_than_once

        if visited_more_than_once:
            return

        if service in permanent_marks:
            return

        if service in temporary_marks:
            visited_more_than_once = service
            return

        temporary_marks.add(service)

        if service.parent is not None:
            visit(service.parent)

        temporary_marks.remove(service)
        permanent_marks.add(service)

        if service in without_permanent_marks:
            without_permanent_marks.remove(service)

        result.append(service)

    while len(without_permanent_marks) > 0 and not visited_more_than_once:
        visit(without_permanent_marks[0])

    if visited_more_than_once:
        return None, visited_more_than_once

    return result, None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def map_services_to_ontology(
    services: Sequence[_types.Service],
) -> Tuple[Optional[ServiceOntology], Optional[List[Error]]]:
    """Infer the ontology of the ``services`` and check the inherited functions."""
    service_set = set(services)  # type: Set[_types.Service]

    for service in services:
        if service.parent is not None and service.parent not in service_set:
            return None, [
                Error(
                    f"service {service.name!r}",
                    f"The parent service {service.parent.name!r} is not part "
                    f"of the schema",
                )
            ]

    sorted_services, visited_more_than_once = _topologically_sort(services=services)
    if visited_more_than_once is not None:
        return (
            None,
            [
                Error(
                    f"service {visited_more_than_once.name!r}",
                    f"Expected no cycles in the inheritance, "
                    f"but the service {visited_more_than_once.name} has been "
                    f"observed in a cycle",
                )
            ],
        )

    assert sorted_services is not None

    ontology = ServiceOntology(services=sorted_services)

    errors = []  # type: List[Error]

    for service in services:
        observed = dict()  # type: MutableMapping[Identifier, _types.Service]
        for ancestor in ontology.list_ancestors(service):
            for function in ancestor.functions:
                observed[function.name] = ancestor

        for function in service.functions:
            ancestor = observed.get(function.name, None)
            if ancestor is not None:
                errors.append(
                    Error(
                        f"service {service.name!r}",
                        f"The function has already been defined in the ancestor "
                        f"service {ancestor.name}: {function.name}",
                    )
                )

    if len(errors) > 0:
        return None, errors

    return ontology, None
