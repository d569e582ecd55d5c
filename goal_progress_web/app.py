import logging
import os
from datetime import datetime, time

from flask import Flask, abort, jsonify, request

from goal_progress.config import EngineSettings, settings_from_env
from goal_progress.data_models import MetricsFailure
from goal_progress.engine import compute_all_metrics, compute_goal_metrics, summarize_portfolio
from goal_progress.errors import GoalDataError, GoalStoreError
from goal_progress.formatter import metrics_to_dict, points_to_dicts, summary_to_dict
from goal_progress.utils import parse_date
from goal_progress_web.goal_store import GoalStore, create_store_from_env

logger = logging.getLogger(__name__)


def _evaluation_time() -> datetime:
    """Return ``now``, or midnight of the ``?today=YYYY-MM-DD`` query value."""
    raw = request.args.get("today", "").strip()
    if not raw:
        return datetime.now()
    try:
        return datetime.combine(parse_date(raw), time.min)
    except GoalDataError as exc:
        abort(400, description=str(exc))


def _load(store: GoalStore):
    try:
        return store.load_inputs()
    except (GoalStoreError, GoalDataError) as exc:
        logger.error("Goal data retrieval failed: %s", exc)
        abort(503, description=str(exc))


def create_app(store: GoalStore | None = None, settings: EngineSettings | None = None) -> Flask:
    app = Flask(__name__)
    goal_store = store or create_store_from_env(os.environ.get("GOALS_DATABASE_URL"))
    engine_settings = settings or settings_from_env()

    @app.errorhandler(503)
    def retrieval_failed(exc):
        return jsonify({"error": exc.description, "retryable": True}), 503

    @app.errorhandler(400)
    def bad_request(exc):
        return jsonify({"error": exc.description}), 400

    @app.errorhandler(404)
    def not_found(exc):
        return jsonify({"error": exc.description}), 404

    @app.get("/api/goals")
    def list_goals():
        now = _evaluation_time()
        inputs = _load(goal_store)
        include_inactive = request.args.get("include_inactive") == "1"
        results = list(inputs.rejected)
        results.extend(
            compute_all_metrics(
                inputs.goals,
                inputs.balances,
                inputs.snapshots,
                now,
                engine_settings,
                include_inactive=include_inactive,
            )
        )
        return jsonify(
            {
                "summary": summary_to_dict(summarize_portfolio(results)),
                "goals": [metrics_to_dict(r) for r in results],
            }
        )

    def _metrics_for(goal_id: str):
        now = _evaluation_time()
        inputs = _load(goal_store)
        for failure in inputs.rejected:
            if failure.goal_id == goal_id:
                return failure
        goal = next((g for g in inputs.goals if g.id == goal_id), None)
        if goal is None:
            abort(404, description=f"Unknown goal: {goal_id}")
        try:
            return compute_goal_metrics(
                goal, inputs.balances, inputs.snapshots, now, engine_settings
            )
        except (GoalDataError, ArithmeticError) as exc:
            logger.warning("Could not compute metrics for goal %s: %s", goal_id, exc)
            return MetricsFailure(goal_id=goal.id, name=goal.name, reason=str(exc))

    @app.get("/api/goals/<goal_id>")
    def goal_detail(goal_id: str):
        result = _metrics_for(goal_id)
        status = 422 if isinstance(result, MetricsFailure) else 200
        return jsonify(metrics_to_dict(result)), status

    @app.get("/api/goals/<goal_id>/history")
    def goal_history(goal_id: str):
        result = _metrics_for(goal_id)
        if isinstance(result, MetricsFailure):
            return jsonify(metrics_to_dict(result)), 422
        full = request.args.get("full") == "1"
        points = result.trajectory if full else result.chart_points
        return jsonify(
            {
                "goal_id": result.goal_id,
                "total_points": len(result.trajectory),
                "points": points_to_dicts(points),
            }
        )

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting Savings Goals web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
