"""
Status routes - scheduler state and last rotation outcome.
"""

from flask import Blueprint, current_app, jsonify

from rotator.scheduler import (
    get_last_outcome,
    get_scheduled_jobs,
    is_scheduler_running,
    trigger_rotation_now,
)


bp = Blueprint('status', __name__, url_prefix='/api/status')


@bp.route('', methods=['GET'])
def get_status():
    """
    Get rotation status.

    Returns:
        JSON with:
        - host: Configured hostname
        - targets: Configured backup targets
        - scheduler_status: 'running' or 'stopped'
        - jobs: Scheduled jobs with next run times
        - last_run: Outcome of the most recent run, or null
    """
    rotator_config = current_app.extensions['rotator_config']
    outcome = get_last_outcome()

    return jsonify({
        'host': rotator_config.hostname,
        'targets': list(rotator_config.backup_targets),
        'scheduler_status': 'running' if is_scheduler_running() else 'stopped',
        'jobs': get_scheduled_jobs(),
        'last_run': outcome.to_dict() if outcome else None
    })


@bp.route('/logs', methods=['GET'])
def get_last_logs():
    """Get log lines of the most recent run."""
    outcome = get_last_outcome()
    if outcome is None:
        return jsonify({'error': 'No rotation has run yet'}), 404

    return jsonify({'logs': outcome.logs})


@bp.route('/run', methods=['POST'])
def run_now():
    """Queue an immediate rotation."""
    try:
        job_id = trigger_rotation_now()
    except RuntimeError as e:
        return jsonify({'error': str(e)}), 503

    return jsonify({'message': 'Rotation queued', 'job_id': job_id}), 202
