"""
API Blueprint - ChatNPT endpoints

Every route answers JSON of the form {"ok": bool, ...}; failures carry an
"error" string and an HTTP status that matches the failure.
"""
import json

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context
from flask_login import current_user, login_required

from app.auth import log_audit_event
from app.models import Issue
from app.permissions import admin_required, filter_issues, validate_issue_access
from chatnpt import engine, history
from chatnpt.index import rebuild_index
from chatnpt.sources import source_catalog

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _question_from_request():
    payload = request.get_json(silent=True) or {}
    return str(payload.get("question") or payload.get("message") or "").strip()


def _audit_query(question):
    log_audit_event("chatnpt_query", f"ChatNPT question: {question[:200]}")


@api_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"ok": True, "user": current_user.to_dict()}), 200


# ============ ChatNPT ============

@api_bp.route("/chatnpt", methods=["POST"])
@login_required
def chatnpt_ask():
    question = _question_from_request()
    if not question:
        return jsonify({"ok": False, "error": "Missing question"}), 400

    try:
        result, err = engine.ask(question, current_user)
    except engine.RateLimitError:
        return jsonify({"ok": False, "error": "Too many requests, please wait a moment"}), 429

    if err:
        current_app.logger.warning("ChatNPT generation failed: %s", err)
        return jsonify({"ok": False, "error": err}), 502

    _audit_query(question)
    return jsonify({"ok": True, **result.to_dict()}), 200


def _sse(event):
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


@api_bp.route("/chatnpt/stream", methods=["POST"])
@login_required
def chatnpt_stream():
    question = _question_from_request()
    if not question:
        return jsonify({"ok": False, "error": "Missing question"}), 400

    try:
        events = engine.stream(question, current_user)
    except engine.RateLimitError:
        return jsonify({"ok": False, "error": "Too many requests, please wait a moment"}), 429

    _audit_query(question)

    def generate():
        for event in events:
            yield _sse(event)

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@api_bp.route("/chatnpt/sources", methods=["GET"])
@login_required
def chatnpt_sources():
    return jsonify({"ok": True, "sources": source_catalog(current_user)}), 200


@api_bp.route("/chatnpt/index", methods=["POST"])
@admin_required
def chatnpt_index():
    stats = rebuild_index(current_user.organization_id)
    log_audit_event("chatnpt_index", f"Rebuilt search index: {stats['indexed']} indexed, {stats['deleted']} deleted")
    return jsonify({"ok": not stats["errors"], **stats}), 200


# ============ Chat history ============

@api_bp.route("/chatnpt/history", methods=["GET"])
@login_required
def history_list():
    chat_id = (request.args.get("chat_id") or "").strip()
    if chat_id:
        chat = history.get_chat(current_user, chat_id)
        if chat is None:
            return jsonify({"ok": False, "error": "Unknown chat_id"}), 404
        return jsonify({"ok": True, "chat": chat.to_dict()}), 200
    return jsonify({"ok": True, "chats": history.serialize(history.list_chats(current_user))}), 200


@api_bp.route("/chatnpt/history", methods=["POST"])
@login_required
def history_create():
    payload = request.get_json(silent=True) or {}
    messages = payload.get("messages") or []
    if not isinstance(messages, list):
        return jsonify({"ok": False, "error": "messages must be a list"}), 400
    chat = history.create_chat(current_user, title=payload.get("title"), messages=messages)
    return jsonify({"ok": True, "chat_id": chat.chat_id, "title": chat.title}), 201


@api_bp.route("/chatnpt/history", methods=["PUT"])
@login_required
def history_update():
    payload = request.get_json(silent=True) or {}
    chat_id = str(payload.get("chat_id") or "").strip()
    if not chat_id:
        return jsonify({"ok": False, "error": "Missing chat_id"}), 400
    messages = payload.get("messages")
    if messages is not None and not isinstance(messages, list):
        return jsonify({"ok": False, "error": "messages must be a list"}), 400

    chat = history.update_chat(current_user, chat_id, messages=messages, title=payload.get("title"))
    if chat is None:
        return jsonify({"ok": False, "error": "Unknown chat_id"}), 404
    return jsonify({"ok": True, "chat": chat.to_dict()}), 200


@api_bp.route("/chatnpt/history", methods=["DELETE"])
@login_required
def history_delete():
    chat_id = (request.args.get("chat_id") or "").strip()
    if not chat_id:
        return jsonify({"ok": False, "error": "Missing chat_id"}), 400
    if not history.delete_chat(current_user, chat_id):
        return jsonify({"ok": False, "error": "Unknown chat_id"}), 404
    return jsonify({"ok": True}), 200


# ============ Issues ============

@api_bp.route("/issues", methods=["GET"])
@login_required
def issues_list():
    issues = Issue.for_organization(current_user.organization_id).all()
    visible = filter_issues(issues, current_user)
    return jsonify({"ok": True, "issues": [i.to_dict() for i in visible]}), 200


@api_bp.route("/issues/<int:issue_id>", methods=["GET"])
@login_required
def issue_detail(issue_id):
    action = (request.args.get("action") or "view").strip().lower()
    issue = Issue.for_organization(current_user.organization_id).filter_by(id=issue_id).first()
    if issue is None:
        return jsonify({"ok": False, "error": "Issue not found"}), 404

    ok, error, status = validate_issue_access(issue, current_user, action)
    if not ok:
        return jsonify({"ok": False, "error": error}), status
    return jsonify({"ok": True, "issue": issue.to_dict()}), 200
