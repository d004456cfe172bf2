from datetime import datetime
import csv
import io
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy import func, or_
from sqlmodel import Session, select
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill
from openpyxl.worksheet.table import Table, TableStyleInfo
from urllib.parse import quote

from proasset.context import AppContext, get_context
from proasset.db import get_session
from proasset.deps import require_permission
from proasset.error import abort
from proasset.models import Asset, User
from proasset.schemas import (
    AssetListResponse,
    AssetRead,
    AssetStatus,
    AssetWrite,
    DepreciationResult,
    FeatureKey,
    LogAction,
    PermissionAction,
)
from proasset.services.activity import add_log
from proasset.services.assets import (
    apply_write,
    asset_view,
    delete_asset,
    get_asset_or_404,
    request_delete,
    resolve_restricted_fields,
)
from proasset.services.depreciation import calculate_depreciation
from proasset.services.locations import ensure_location_exists

router = APIRouter(prefix="/assets", tags=["assets"])

can_view = require_permission(FeatureKey.assets, PermissionAction.view)
can_edit = require_permission(FeatureKey.assets, PermissionAction.edit)
can_approve = require_permission(FeatureKey.approvals, PermissionAction.edit)

ORDER_MAP = {
    "created_desc": (Asset.created_at.desc(), Asset.id.desc()),
    "created_asc": (Asset.created_at.asc(), Asset.id.asc()),
    "name_asc": (Asset.name.asc(),),
    "name_desc": (Asset.name.desc(),),
    "price_asc": (Asset.price.asc(),),
    "price_desc": (Asset.price.desc(),),
}


def _filtered(
    q: str | None,
    category: str | None,
    location_id: str | None,
    status: AssetStatus | None,
    include_pending: bool,
) -> list:
    conds = []
    if q:
        conds.append(or_(Asset.name.contains(q), Asset.category.contains(q), Asset.barcode.contains(q)))
    if category:
        conds.append(Asset.category == category)
    if location_id:
        conds.append(Asset.location_id == location_id)
    if status is not None:
        conds.append(Asset.status == status.value)
    if not include_pending:
        conds.append(Asset.deletion_status.is_(None))
    return conds


@router.post("", response_model=AssetRead)
def create_asset(
    data: AssetWrite,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_edit),
):
    restricted = resolve_restricted_fields(data, None, user.role, ctx.permissions)
    ensure_location_exists(session, data.location_id)

    asset = apply_write(Asset(), data, restricted)
    session.add(asset)
    add_log(session, LogAction.CREATE, asset.name, f"Added new asset {asset.name}", user)
    session.commit()
    session.refresh(asset)
    return asset_view(asset, user.role, ctx.permissions)


@router.get("", response_model=AssetListResponse)
def list_assets(
    q: str | None = None,
    category: str | None = None,
    location_id: str | None = None,
    status: AssetStatus | None = None,
    include_pending: bool = Query(True, description="Include assets waiting for deletion approval"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    sort: str = Query("created_desc", description="created_desc/created_asc/name_asc/name_desc/price_asc/price_desc"),
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_view),
):
    if sort not in ORDER_MAP:
        abort(400, "BAD_REQUEST", f"Unsupported sort: {sort}")

    conds = _filtered(q, category, location_id, status, include_pending)

    count_stmt = select(func.count()).select_from(Asset)
    items_stmt = select(Asset)
    if conds:
        count_stmt = count_stmt.where(*conds)
        items_stmt = items_stmt.where(*conds)

    total = session.exec(count_stmt).one()
    items = session.exec(items_stmt.order_by(*ORDER_MAP[sort]).offset(offset).limit(limit)).all()

    return {
        "items": [asset_view(a, user.role, ctx.permissions) for a in items],
        "total": total,
        "limit": limit,
        "offset": offset,
        "q": q,
    }


@router.get("/export.xlsx")
def export_assets_xlsx(
    q: str | None = None,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_view),
):
    stmt = select(Asset).order_by(Asset.created_at.asc(), Asset.id.asc())
    conds = _filtered(q, None, None, None, True)
    if conds:
        stmt = stmt.where(*conds)
    assets = [asset_view(a, user.role, ctx.permissions) for a in session.exec(stmt).all()]

    header = ["ID", "Name", "Category", "Location ID", "Price", "Purchase Date",
              "Useful Life", "Status", "Barcode", "Deletion"]

    wb = Workbook()
    ws = wb.active
    ws.title = "Assets"

    header_font = Font(bold=True)
    header_fill = PatternFill("solid", fgColor="DDDDDD")
    header_align = Alignment(horizontal="center", vertical="center")

    ws.append(header)
    ws.row_dimensions[1].height = 24
    for col in range(1, len(header) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_align

    for d in assets:
        ws.append([
            d["id"],
            d["name"],
            d["category"],
            d["location_id"],
            d["price"],
            d["purchase_date"],
            d["useful_life"],
            d["status"],
            d["barcode"] or "",
            d["deletion_status"] or "",
        ])

    data_end_row = 1 + len(assets)
    ws.freeze_panes = "A2"

    for r in range(2, data_end_row + 1):
        ws.cell(row=r, column=5).number_format = "#,##0"
        ws.cell(row=r, column=6).number_format = "yyyy-mm-dd"

    col_widths = {"A": 34, "B": 28, "C": 16, "D": 34, "E": 14, "F": 14, "G": 11, "H": 12, "I": 16, "J": 10}
    for k, w in col_widths.items():
        ws.column_dimensions[k].width = w

    table = Table(displayName="AssetRegister", ref=f"A1:J{max(2, data_end_row)}")
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showFirstColumn=False,
        showLastColumn=False,
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(table)

    ws.append([])
    ws.append(["Exported at", datetime.now().strftime("%Y-%m-%d %H:%M:%S")])

    buf = io.BytesIO()
    wb.save(buf)

    filename = f"assets-export-{datetime.now().strftime('%Y-%m-%d')}.xlsx"
    headers = {"Content-Disposition": f"attachment; filename=\"{filename}\"; filename*=UTF-8''{quote(filename)}"}
    return Response(
        content=buf.getvalue(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )


@router.get("/export.csv")
def export_assets_csv(
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_view),
):
    assets = session.exec(select(Asset).order_by(Asset.created_at.asc(), Asset.id.asc())).all()

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["ID", "Name", "Category", "LocationID", "Price", "PurchaseDate", "Status", "Barcode"])
    for a in assets:
        d = asset_view(a, user.role, ctx.permissions)
        writer.writerow([
            d["id"], d["name"], d["category"], d["location_id"],
            "" if d["price"] is None else d["price"],
            "" if d["purchase_date"] is None else d["purchase_date"].isoformat(),
            d["status"], d["barcode"] or "",
        ])

    filename = f"assets-export-{datetime.now().strftime('%Y-%m-%d')}.csv"
    return Response(
        content=buf.getvalue(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )


@router.get("/{asset_id}", response_model=AssetRead)
def get_asset(
    asset_id: str,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_view),
):
    return asset_view(get_asset_or_404(session, asset_id), user.role, ctx.permissions)


@router.get("/{asset_id}/depreciation", response_model=DepreciationResult)
def get_depreciation(
    asset_id: str,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_view),
):
    asset = get_asset_or_404(session, asset_id)
    if not ctx.permissions.has_permission(user.role, FeatureKey.assets, "view", "price"):
        abort(403, "FIELD_FORBIDDEN", f"Role {user.role} may not view field price")
    return calculate_depreciation(asset.price, asset.purchase_date, asset.useful_life)


@router.put("/{asset_id}", response_model=AssetRead)
def update_asset(
    asset_id: str,
    data: AssetWrite,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_edit),
):
    asset = get_asset_or_404(session, asset_id)
    restricted = resolve_restricted_fields(data, asset, user.role, ctx.permissions)
    if data.location_id != asset.location_id:
        ensure_location_exists(session, data.location_id)

    apply_write(asset, data, restricted)
    session.add(asset)
    add_log(session, LogAction.UPDATE, asset.name, f"Updated details for {asset.name}", user)
    session.commit()
    session.refresh(asset)
    return asset_view(asset, user.role, ctx.permissions)


@router.post("/{asset_id}/deletion-request", response_model=AssetRead)
def request_asset_deletion(
    asset_id: str,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_edit),
):
    asset = request_delete(session, get_asset_or_404(session, asset_id), user)
    return asset_view(asset, user.role, ctx.permissions)


@router.delete("/{asset_id}")
def delete_asset_now(
    asset_id: str,
    session: Session = Depends(get_session),
    user: User = Depends(can_approve),
):
    delete_asset(session, get_asset_or_404(session, asset_id), user)
    return {"ok": True}

