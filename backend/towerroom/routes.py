from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the towerroom session server!'})


@main.route('/health')
def health():
    from towerroom import get_dispatcher
    dispatcher = get_dispatcher(current_app)
    return jsonify({'status': 'ok', 'sessions': len(dispatcher.directory)})
