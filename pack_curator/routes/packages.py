"""
Package management routes.
Handles package listing, dependency relations, cascading toggles, categories,
ignored optional dependencies, report regeneration and diagnostics.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..curator import RELATIONS, PackCurator, node_to_dict
from ..dependencies import get_curator

logger = logging.getLogger(__name__)
router = APIRouter()


class IgnoreRequest(BaseModel):
    identifier: str


def standard_response(status: str = "ok", data: Optional[dict] = None, message: Optional[str] = None, code: int = 200):
    payload = {"status": status}
    if data is not None:
        payload["data"] = data
    if message:
        payload["message"] = message
    return JSONResponse(payload, status_code=code)


def _toggle_action(action: str) -> Optional[bool]:
    return {"enable": True, "disable": False}.get(action)


@router.get("/packages")
async def list_packages(curator: PackCurator = Depends(get_curator)):
    """List all packages in report order."""
    nodes = [node_to_dict(node) for node in curator.list_nodes()]
    return standard_response(data={"packages": nodes, "count": len(nodes)})


@router.get("/packages/{identifier}")
async def get_package(identifier: str, curator: PackCurator = Depends(get_curator)):
    node = curator.get_node(identifier)
    if node is None:
        return standard_response("error", message=f'Mod "{identifier}" not found.', code=404)
    return standard_response(data=node_to_dict(node))


@router.get("/packages/{identifier}/{relation}")
async def list_related(identifier: str, relation: str, curator: PackCurator = Depends(get_curator)):
    """List dependents, mandatory dependencies or optional dependencies of a package."""
    if relation not in RELATIONS:
        return standard_response(
            "error",
            message=f"Usage: /packages/<id>/<{'|'.join(RELATIONS)}>",
            code=400,
        )
    try:
        items = curator.related(identifier, relation)
    except KeyError:
        return standard_response("error", message=f'Mod "{identifier}" not found.', code=404)
    return standard_response(data={"identifier": identifier, "relation": relation, "items": items})


@router.post("/packages/{identifier}/{action}")
async def toggle_package(identifier: str, action: str, curator: PackCurator = Depends(get_curator)):
    """Enable or disable a package with its cascade."""
    enabled = _toggle_action(action)
    if enabled is None:
        return standard_response("error", message="Usage: /packages/<id>/<enable|disable>", code=400)
    if curator.get_node(identifier) is None:
        return standard_response("error", message=f'Mod "{identifier}" not found.', code=404)

    result = await curator.set_active(identifier, enabled)
    return standard_response(data=result.to_dict())


@router.get("/categories")
async def list_categories(curator: PackCurator = Depends(get_curator)):
    return standard_response(data={"categories": curator.categories()})


@router.get("/categories/{name}")
async def list_category(name: str, curator: PackCurator = Depends(get_curator)):
    try:
        nodes = curator.category_nodes(name)
    except KeyError:
        return standard_response("error", message=f'Category "{name}" not found.', code=404)
    return standard_response(data={
        "category": name,
        "packages": [{"identifier": node.identifier, "name": node.name, "active": node.active} for node in nodes],
    })


@router.post("/categories/{name}/{action}")
async def toggle_category(name: str, action: str, curator: PackCurator = Depends(get_curator)):
    enabled = _toggle_action(action)
    if enabled is None:
        return standard_response("error", message="Usage: /categories/<name>/<enable|disable>", code=400)
    try:
        results = await curator.set_category_active(name, enabled)
    except KeyError:
        return standard_response("error", message=f'Category "{name}" not found.', code=404)
    return standard_response(data={"category": name, "results": [result.to_dict() for result in results]})


@router.get("/optional")
async def list_unsatisfied_optional(curator: PackCurator = Depends(get_curator)):
    """Unsatisfied optional dependencies across the pack."""
    return standard_response(data=curator.unsatisfied_optional())


@router.post("/ignored")
async def ignore_optional(body: IgnoreRequest, curator: PackCurator = Depends(get_curator)):
    identifier = body.identifier.strip()
    if not identifier:
        return standard_response("error", message="Usage: ignore <modId>", code=400)
    if not await curator.ignore_optional(identifier):
        return standard_response("error", message=f'Mod "{identifier}" is already ignored.', code=409)
    return standard_response(data={"identifier": identifier, "ignored": len(curator.ignore_list)},
                             message=f'Mod "{identifier}" ignored.')


@router.post("/report")
async def regenerate_report(curator: PackCurator = Depends(get_curator)):
    """Re-run the analysis and write the report."""
    await curator.generate_report()
    logger.info("📝 Report regenerated via API")
    return standard_response(
        data={"path": str(curator.settings.report_file), "packages": len(curator.graph)},
        message="Report generated.",
    )


@router.get("/diagnostics")
async def list_diagnostics(curator: PackCurator = Depends(get_curator)):
    items = curator.diagnostics()
    return standard_response(data={
        "diagnostics": [item.to_dict() for item in items],
        "stats": curator.collector.get_stats(),
        "disabled_dependencies": list(curator.graph.disabled_dependencies),
    })


@router.post("/diagnostics/fix-disabled")
async def fix_disabled_dependencies(curator: PackCurator = Depends(get_curator)):
    """Enable every disabled mandatory dependency of an active package."""
    results = await curator.fix_disabled_dependencies()
    return standard_response(data={"results": [result.to_dict() for result in results]})
