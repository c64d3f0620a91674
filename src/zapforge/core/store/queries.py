# src/zapforge/core/store/queries.py
"""Read-side queries shared by loaders, generators and the HTTP server.

Rows are returned as plain dicts so they can be handed straight to Jinja2
templates and JSON responses.
"""

from typing import Any

from sqlalchemy import select

from zapforge.contracts.enums import PackageType
from zapforge.core.store.database import MetadataStore
from zapforge.core.store.schema import (
    attributes_table,
    clusters_table,
    packages_table,
    templates_table,
)


def find_package(store: MetadataStore, *, path: str, crc: str, package_type: PackageType) -> int | None:
    """Id of a package already loaded from the same file content, if any."""
    query = (
        select(packages_table.c.package_id)
        .where(packages_table.c.path == path)
        .where(packages_table.c.crc == crc)
        .where(packages_table.c.type == package_type.value)
        .order_by(packages_table.c.package_id.desc())
    )
    with store.connection() as conn:
        row = conn.execute(query).first()
    return None if row is None else int(row.package_id)


def get_package(store: MetadataStore, package_id: int) -> dict[str, Any]:
    """Fetch one package row.

    Raises:
        KeyError: If no package has this id.
    """
    with store.connection() as conn:
        row = conn.execute(select(packages_table).where(packages_table.c.package_id == package_id)).first()
    if row is None:
        raise KeyError(f"No package with id {package_id}")
    return dict(row._mapping)


def latest_package_id(store: MetadataStore, package_type: PackageType) -> int | None:
    """Most recently loaded package of a type."""
    query = select(packages_table.c.package_id).where(packages_table.c.type == package_type.value).order_by(packages_table.c.package_id.desc())
    with store.connection() as conn:
        row = conn.execute(query).first()
    return None if row is None else int(row.package_id)


def list_clusters(store: MetadataStore, package_id: int) -> list[dict[str, Any]]:
    """Clusters of a metadata package ordered by code, each with an ``attributes`` list."""
    with store.connection() as conn:
        cluster_rows = conn.execute(select(clusters_table).where(clusters_table.c.package_id == package_id).order_by(clusters_table.c.code)).all()
        cluster_ids = [row.cluster_id for row in cluster_rows]
        attribute_rows = (
            conn.execute(
                select(attributes_table).where(attributes_table.c.cluster_id.in_(cluster_ids)).order_by(attributes_table.c.cluster_id, attributes_table.c.code)
            ).all()
            if cluster_ids
            else []
        )

    by_cluster: dict[int, list[dict[str, Any]]] = {cluster_id: [] for cluster_id in cluster_ids}
    for row in attribute_rows:
        attribute = dict(row._mapping)
        attribute["writable"] = bool(attribute["writable"])
        by_cluster[row.cluster_id].append(attribute)

    clusters = []
    for row in cluster_rows:
        cluster = dict(row._mapping)
        cluster["attributes"] = by_cluster[row.cluster_id]
        clusters.append(cluster)
    return clusters


def list_templates(store: MetadataStore, package_id: int) -> list[dict[str, Any]]:
    """Templates of a template package in manifest order."""
    query = select(templates_table).where(templates_table.c.package_id == package_id).order_by(templates_table.c.template_id)
    with store.connection() as conn:
        return [dict(row._mapping) for row in conn.execute(query).all()]
