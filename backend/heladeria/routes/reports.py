from flask import Blueprint, Response, jsonify, request

from ..decorators import require_session
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/period")
@require_session
def period_report():
    date_from = request.args.get("date_from")
    date_to = request.args.get("date_to")

    try:
        report = reporting_service.period_report(date_from, date_to)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/sales.csv")
@require_session
def sales_csv():
    date_from = request.args.get("date_from")
    date_to = request.args.get("date_to")

    try:
        filename, body = reporting_service.export_sales_csv(date_from, date_to)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400

    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
