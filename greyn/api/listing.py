"""
Response helpers shared by the admin list consoles.
"""

from typing import Any, Callable, Dict, List, Sequence, Tuple

from fastapi import HTTPException, Response, status

from greyn.engines.listing import ListResult, export_filename, render_export


def list_payload(result: ListResult, serialize: Callable[[Any], Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "items": [serialize(item) for item in result.items],
        "stats": result.stats,
        "pagination": result.pagination,
    }


def export_response(
    rows: List[Dict[str, Any]],
    columns: Sequence[Tuple[str, str]],
    fmt: str,
    resource: str,
) -> Response:
    """Render rows as a downloadable CSV or JSON attachment."""
    try:
        body, media_type = render_export(rows, columns, fmt)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    filename = export_filename(resource, fmt.lower())
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
