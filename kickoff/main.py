from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'name': 'KickOff server', 'ok': True})


@main.route('/health')
def health():
    return jsonify({'ok': True})


@main.route('/matches')
def list_matches():
    service = current_app.extensions['kickoff']
    return jsonify(service.public_matches())
