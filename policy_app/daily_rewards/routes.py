"""
Daily reward routes.
"""
from flask import Blueprint, jsonify

from ..user_session.services import SessionService


def _reward_dict(reward):
    return reward.model_dump(mode="json") if reward else None


def create_daily_rewards_routes(session_service: SessionService) -> Blueprint:
    """Create daily reward routes."""
    bp = Blueprint('daily_rewards', __name__)

    @bp.route("/api/rewards/today", methods=["GET"])
    def today_reward():
        """Today's reward, created on the first check of the day."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        reward = session.rewards.check_daily_reward()
        return session_service.payload(session, {"reward": _reward_dict(reward)})

    @bp.route("/api/rewards/claim", methods=["POST"])
    def claim_reward():
        """Claim today's reward."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        if session.rewards.today_reward is None:
            session.rewards.check_daily_reward()
        claimed = session.rewards.claim_daily_reward()
        return session_service.payload(session, {
            "claimed": claimed,
            "reward": _reward_dict(session.rewards.today_reward),
        })

    return bp
