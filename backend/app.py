from flask import Blueprint, Flask, current_app, g, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from dataclasses import dataclass
from typing import Any
import logging
import os

from config import config as config_by_name
from services.auth_service import AuthService
from services.cache_manager import CacheManager
from services.disaster_repository import DisasterRepository
from services.gemini_service import GeminiService
from services.geocoding_service import GeocodingService
from services.official_update_models import SearchContext
from services.official_updates_service import OfficialUpdatesService
from services.social_media_service import SocialMediaService
from utils.errors import InternalError, ValidationError
from utils.geo import within_radius
from utils.secure_logging import log_action
from utils.url_validator import validate_image_url
from utils.validators import CoordinateValidator, DisasterValidator

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

TRUTHY_VALUES = ('1', 'true', 'yes', 'on')


@dataclass
class ServiceRegistry:
    """Services wired into the Flask app; tests build one with fakes"""
    cache_manager: Any
    disaster_repository: Any
    official_updates: Any
    geocoding: Any
    gemini: Any
    social_media: Any
    auth: Any


def build_services(app_config):
    """Initialize Firebase and wire the production services"""
    from firebase_admin import db
    from firebase_setup import init_firebase

    init_firebase(app_config.get('FIREBASE_DATABASE_URL'))

    cache_manager = CacheManager(db)
    repository = DisasterRepository(db)
    user_agent = app_config['USER_AGENT']

    return ServiceRegistry(
        cache_manager=cache_manager,
        disaster_repository=repository,
        official_updates=OfficialUpdatesService(
            cache_manager,
            repository,
            per_source_cap=app_config['OFFICIAL_UPDATES_PER_SOURCE_CAP'],
            global_cap=app_config['OFFICIAL_UPDATES_GLOBAL_CAP'],
            cache_ttl_seconds=app_config['OFFICIAL_UPDATES_CACHE_TTL_SECONDS'],
            timeout=app_config['SCRAPER_TIMEOUT_SECONDS'],
            user_agent=user_agent,
        ),
        geocoding=GeocodingService(cache_manager, user_agent=user_agent),
        gemini=GeminiService(
            app_config.get('GEMINI_API_KEY'),
            cache_manager,
            text_model=app_config['GEMINI_TEXT_MODEL'],
            vision_model=app_config['GEMINI_VISION_MODEL'],
            user_agent=user_agent,
        ),
        social_media=SocialMediaService(
            cache_manager, db, cache_ttl_seconds=app_config['SOCIAL_MEDIA_CACHE_TTL_SECONDS']
        ),
        auth=AuthService(),
    )


def services() -> ServiceRegistry:
    return current_app.extensions['disaster_services']


def _is_truthy(value):
    return (value or '').strip().lower() in TRUTHY_VALUES


def _json_body():
    return request.get_json(silent=True) or {}


def _can_modify(disaster):
    user = g.user
    return services().auth.is_admin(user) or disaster.get('owner_id') == user['id']


# ===== GENERAL ENDPOINTS =====

api_bp = Blueprint('api', __name__)


@api_bp.route('/', methods=['GET'])
def index():
    return "Disaster Response Coordination Platform API"


@api_bp.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({'status': 'healthy', 'service': 'disaster-response-api'})


@api_bp.route('/geocode', methods=['POST'])
@limiter.limit("30 per hour")
def extract_and_geocode():
    """
    Extract a location from a description with Gemini, then geocode it

    Body:
        description (str): Free-text disaster description

    Returns:
        200: {location_name, geocode}
        400: Missing description
        404: No location or coordinates found
    """
    try:
        description = (_json_body().get('description') or '').strip()
        if not description:
            return jsonify({'error': 'Description is required'}), 400

        location_name = services().gemini.extract_location(description)
        if not location_name:
            return jsonify({'error': 'No location found'}), 404

        geocode = services().geocoding.geocode(location_name)
        if not geocode:
            return jsonify({'error': 'No geocode found'}), 404

        return jsonify({'location_name': location_name, 'geocode': geocode})

    except Exception as e:
        logger.error(f"Error in extract_and_geocode: {e}", exc_info=True)
        return jsonify({'error': 'Failed to extract and geocode location'}), 500


@api_bp.route('/gemini/extract-location', methods=['POST'])
@limiter.limit("30 per hour")
def gemini_extract_location():
    """Extract affected locations from text"""
    try:
        text = (_json_body().get('text') or '').strip()
        if not text:
            return jsonify({'error': 'Text description is required.'}), 400

        return jsonify({'result': services().gemini.extract_location(text)})

    except Exception as e:
        logger.error(f"Error in /gemini/extract-location: {e}", exc_info=True)
        return jsonify({'error': 'Failed to extract location.'}), 500


@api_bp.route('/gemini/analyze-image', methods=['POST'])
@limiter.limit("30 per hour")
def gemini_analyze_image():
    """Analyze an image for disaster context and signs of manipulation"""
    try:
        data = _json_body()
        image_url = data.get('image_url')
        if not image_url:
            return jsonify({'error': 'Image URL is required.'}), 400

        is_valid, error = validate_image_url(image_url)
        if not is_valid:
            return jsonify({'error': error}), 400

        result = services().gemini.verify_image(image_url, data.get('text_context') or '')
        return jsonify({'result': result})

    except Exception as e:
        logger.error(f"Error in /gemini/analyze-image: {e}", exc_info=True)
        return jsonify({'error': 'Failed to analyze image.'}), 500


# ===== DISASTER ENDPOINTS =====

disasters_bp = Blueprint('disasters', __name__, url_prefix='/disasters')


@disasters_bp.route('', methods=['POST'])
@limiter.limit("20 per hour")
def create_disaster():
    """
    Create a disaster record

    Body:
        title, description, location_name (required), tags (list or comma-separated)

    Returns:
        201: {message, disaster}
        400: Validation error
    """
    try:
        data = _json_body()
        is_valid, error = DisasterValidator.validate_create(data)
        if not is_valid:
            return jsonify({'error': error}), 400

        location_name = DisasterValidator.sanitize_text(data['location_name'])
        disaster = {
            'title': DisasterValidator.sanitize_text(data['title']),
            'description': DisasterValidator.sanitize_text(data['description']),
            'location_name': location_name,
            'tags': DisasterValidator.normalize_tags(data.get('tags')),
            'owner_id': g.user['id'],
        }

        geocode = services().geocoding.geocode(location_name)
        if geocode:
            disaster['lat'] = float(geocode['lat'])
            disaster['lng'] = float(geocode['lon'])
        else:
            logger.info(f"Geocoding failed for '{location_name}', continuing without coordinates")

        created = services().disaster_repository.create_disaster(disaster)

        log_action("Disaster created", {
            'disaster_id': created['id'],
            'title': created['title'],
            'location_name': location_name,
            'user_id': g.user['id'],
            'has_coordinates': bool(geocode),
        })

        return jsonify({'message': 'Disaster created successfully!', 'disaster': created}), 201

    except Exception as e:
        logger.error(f"Error creating disaster: {e}", exc_info=True)
        return jsonify({'error': 'Failed to create disaster'}), 500


@disasters_bp.route('', methods=['GET'])
def list_disasters():
    """List disasters, optionally filtered by ?tag="""
    try:
        tag = request.args.get('tag')
        disasters = services().disaster_repository.list_disasters(tag=tag)
        log_action("Disasters fetched", {'tag': tag, 'count': len(disasters)})
        return jsonify(disasters)

    except Exception as e:
        logger.error(f"Error fetching disasters: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch disasters'}), 500


@disasters_bp.route('/<disaster_id>', methods=['PUT'])
@limiter.limit("60 per hour")
def update_disaster(disaster_id):
    """
    Update a disaster (owner or admin only)

    Returns:
        200: Updated disaster
        400: Validation error
        403: Not the owner
        404: Disaster not found
    """
    try:
        repository = services().disaster_repository
        existing = repository.find_disaster_by_id(disaster_id)
        if existing is None:
            return jsonify({'error': 'Disaster not found'}), 404

        if not _can_modify(existing):
            return jsonify({'error': 'Forbidden'}), 403

        data = _json_body()
        is_valid, error = DisasterValidator.validate_update(data)
        if not is_valid:
            return jsonify({'error': error}), 400

        changes = {
            'title': DisasterValidator.sanitize_text(data.get('title')),
            'description': DisasterValidator.sanitize_text(data.get('description')),
            'location_name': DisasterValidator.sanitize_text(data.get('location_name')),
        }
        if 'tags' in data:
            changes['tags'] = DisasterValidator.normalize_tags(data.get('tags'))

        updated = repository.update_disaster(disaster_id, changes, g.user['id'])
        if updated is None:
            return jsonify({'error': 'Disaster not found'}), 404

        services().social_media.invalidate_disaster_feeds(disaster_id)
        log_action("Disaster updated", {'id': disaster_id, 'user_id': g.user['id']})
        return jsonify(updated)

    except Exception as e:
        logger.error(f"Error updating disaster {disaster_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to update disaster'}), 500


@disasters_bp.route('/<disaster_id>', methods=['PATCH'])
@limiter.limit("60 per hour")
def update_disaster_coordinates(disaster_id):
    """Set lat/lng for a disaster"""
    try:
        data = _json_body()
        lat, lng = data.get('lat'), data.get('lng')
        if lat is None or lng is None:
            return jsonify({'error': 'lat and lng are required'}), 400

        if not CoordinateValidator.validate_coordinates(lat, lng):
            return jsonify({'error': 'lat must be within [-90, 90] and lng within [-180, 180]'}), 400

        updated = services().disaster_repository.update_coordinates(disaster_id, float(lat), float(lng))
        if updated is None:
            return jsonify({'error': 'Disaster not found'}), 404

        log_action("Disaster coordinates updated", {'disaster_id': disaster_id})
        return jsonify({'message': 'Coordinates updated successfully!', 'disaster': updated})

    except Exception as e:
        logger.error(f"Error updating disaster coordinates {disaster_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to update coordinates'}), 500


@disasters_bp.route('/<disaster_id>', methods=['DELETE'])
@limiter.limit("30 per hour")
def delete_disaster(disaster_id):
    """Delete a disaster (owner or admin only)"""
    try:
        repository = services().disaster_repository
        existing = repository.find_disaster_by_id(disaster_id)
        if existing is None:
            return jsonify({'error': 'Disaster not found'}), 404

        if not _can_modify(existing):
            return jsonify({'error': 'Forbidden'}), 403

        repository.delete_disaster(disaster_id)
        services().social_media.invalidate_disaster_feeds(disaster_id)

        log_action("Disaster deleted", {'id': disaster_id, 'user_id': g.user['id']})
        return jsonify({'message': 'Disaster deleted'})

    except Exception as e:
        logger.error(f"Error deleting disaster {disaster_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to delete disaster'}), 500


@disasters_bp.route('/<disaster_id>/official-updates', methods=['GET'])
@limiter.limit("120 per hour")
def get_official_updates(disaster_id):
    """
    Official updates scraped from ReliefWeb, FEMA and Ready.gov

    Query:
        title, location_name: Used to build the search term
        refresh: Truthy value bypasses the cache

    Returns:
        200: List of updates, newest first
        400: No search term could be derived
        500: Pipeline failure
    """
    context = SearchContext(
        disaster_id=disaster_id,
        title=request.args.get('title'),
        location_name=request.args.get('location_name'),
    )
    force_refresh = _is_truthy(request.args.get('refresh'))

    try:
        updates = services().official_updates.get_official_updates(context, force_refresh=force_refresh)
    except ValidationError as e:
        return jsonify({'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error in get_official_updates for {disaster_id}: {e}")
        return jsonify({'error': 'Server error fetching official updates.'}), 500

    return jsonify([update.to_dict() for update in updates])


@disasters_bp.route('/<disaster_id>/social-media', methods=['GET'])
def get_disaster_social_media(disaster_id):
    """Mock social media reports for a disaster"""
    try:
        stored = services().disaster_repository.find_disaster_by_id(disaster_id) or {}
        feed = services().social_media.get_disaster_feed(
            disaster_id,
            title=stored.get('title') or request.args.get('title'),
            location_name=stored.get('location_name') or request.args.get('location_name'),
        )
        log_action("Social media reports fetched", {'disaster_id': disaster_id})
        return jsonify(feed)

    except Exception as e:
        logger.error(f"Error fetching social media for {disaster_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch social media reports'}), 500


@disasters_bp.route('/<disaster_id>/resources', methods=['GET'])
def get_nearby_resources(disaster_id):
    """Resources linked to a disaster near ?lat=&lon="""
    try:
        lat, lon = request.args.get('lat'), request.args.get('lon')
        if not lat or not lon:
            return jsonify({'error': 'lat and lon are required'}), 400

        if not CoordinateValidator.validate_coordinates(lat, lon):
            return jsonify({'error': 'Invalid coordinates'}), 400

        resources = services().disaster_repository.list_resources(disaster_id)
        nearby = within_radius(resources, float(lat), float(lon),
                               current_app.config['NEARBY_RESOURCES_RADIUS_KM'])

        log_action("Nearby resources fetched", {'disaster_id': disaster_id, 'count': len(nearby)})
        return jsonify(nearby)

    except Exception as e:
        logger.error(f"Error fetching resources for {disaster_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch nearby resources'}), 500


@disasters_bp.route('/<disaster_id>/verify-image', methods=['POST'])
@limiter.limit("30 per hour")
def verify_image(disaster_id):
    """Gemini analysis of an image attached to a disaster"""
    try:
        data = _json_body()
        image_url = data.get('image_url')
        if not image_url:
            return jsonify({'error': 'image_url is required'}), 400

        is_valid, error = validate_image_url(image_url)
        if not is_valid:
            return jsonify({'error': error}), 400

        result = services().gemini.verify_image(image_url, data.get('description') or '')
        log_action("Image verified", {'disaster_id': disaster_id, 'image_url': image_url})
        return jsonify({'result': result})

    except Exception as e:
        logger.error(f"Error verifying image for {disaster_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to verify image'}), 500


# ===== MOCK SOCIAL MEDIA ENDPOINTS =====

social_bp = Blueprint('mock_social_media', __name__, url_prefix='/mock-social-media')


@social_bp.route('', methods=['GET'])
def get_mock_social_media():
    """General mock feed for ?disasterType=&location="""
    try:
        disaster_type = request.args.get('disasterType') or 'disaster'
        location = request.args.get('location') or 'affected area'
        feed = services().social_media.get_mock_feed(disaster_type, location)
        log_action("Mock social media posts served", {'disasterType': disaster_type, 'location': location})
        return jsonify(feed)

    except Exception as e:
        logger.error(f"Error generating mock social media: {e}", exc_info=True)
        return jsonify({'error': 'Failed to generate social media posts'}), 500


@social_bp.route('/disaster/<disaster_id>', methods=['GET'])
def get_mock_disaster_social_media(disaster_id):
    """Mock feed themed on the disaster title"""
    try:
        feed = services().social_media.get_disaster_feed(
            disaster_id,
            title=request.args.get('title'),
            location_name=request.args.get('location_name'),
        )
        return jsonify(feed)

    except Exception as e:
        logger.error(f"Error generating disaster social media: {e}", exc_info=True)
        return jsonify({'error': 'Failed to generate disaster social media posts'}), 500


@social_bp.route('/create', methods=['POST'])
@limiter.limit("30 per hour")
def create_social_media_post():
    """
    Create a user post for a disaster

    Returns:
        201: {message, post}
        400: Validation error
    """
    try:
        data = _json_body()
        social_media = services().social_media
        is_valid, error = social_media.validate_post(data)
        if not is_valid:
            return jsonify({'error': error}), 400

        platform = data.get('platform', 'Twitter')
        post = social_media.create_post(
            data['disaster_id'],
            data['content'],
            platform=platform,
            user_id=data.get('user_id'),
        )

        log_action("Social media post created", {
            'disaster_id': post['disaster_id'],
            'platform': platform,
            'user_id': post['user_id'],
        })
        return jsonify({'message': f'Post successfully created on {platform}!', 'post': post}), 201

    except Exception as e:
        logger.error(f"Error creating social media post: {e}", exc_info=True)
        return jsonify({'error': 'Failed to create social media post'}), 500


@social_bp.route('/user-posts/<disaster_id>', methods=['GET'])
def get_user_posts(disaster_id):
    """User posts for a disaster, newest first"""
    try:
        posts = services().social_media.get_user_posts(disaster_id)
        return jsonify({'posts': posts, 'count': len(posts)})

    except Exception as e:
        logger.error(f"Error fetching user posts for {disaster_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch user posts'}), 500


# ===== ERROR HANDLERS =====

def request_entity_too_large(error):
    return jsonify({
        'error': 'Request payload too large',
        'max_size': '10 MB',
        'message': 'Please reduce the size of your request.'
    }), 413


def bad_request(error):
    return jsonify({'error': 'Bad request', 'message': str(error)}), 400


def handle_validation_error(error):
    return jsonify({'error': error.message}), 400


def handle_internal_error(error):
    return jsonify({'error': error.message}), 500


def set_security_headers(response):
    """Security headers for every API response"""
    if os.getenv('FLASK_ENV') == 'production':
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains; preload'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    return response


def attach_user():
    """Mock auth: resolve the acting user from the x-user-id header"""
    g.user = services().auth.resolve_user(request.headers.get(AuthService.HEADER_NAME))


def create_app(config_name=None, services=None):
    """
    Build the Flask application

    Args:
        config_name (str): Key of config.config; defaults to FLASK_ENV or 'default'
        services (ServiceRegistry): Pre-built services; Firebase-backed ones are built when omitted

    Returns:
        Flask: Configured application
    """
    config_name = config_name or os.getenv('FLASK_ENV', 'default')
    app = Flask(__name__)
    app.config.from_object(config_by_name.get(config_name, config_by_name['default']))

    if config_name == 'production':
        frontend_url = os.getenv('FRONTEND_URL')
        if not frontend_url:
            raise ValueError("FRONTEND_URL must be set in production environment")
        allowed_origins = [frontend_url]
    else:
        allowed_origins = app.config['CORS_ORIGINS']
        dev_mobile_url = os.getenv('DEV_MOBILE_URL', '')
        if dev_mobile_url:
            allowed_origins = allowed_origins + [dev_mobile_url]

    CORS(app, origins=allowed_origins, supports_credentials=True)
    limiter.init_app(app)

    app.extensions['disaster_services'] = services or build_services(app.config)

    app.before_request(attach_user)
    app.after_request(set_security_headers)

    app.register_blueprint(api_bp)
    app.register_blueprint(disasters_bp)
    app.register_blueprint(social_bp)

    app.register_error_handler(413, request_entity_too_large)
    app.register_error_handler(400, bad_request)
    app.register_error_handler(ValidationError, handle_validation_error)
    app.register_error_handler(InternalError, handle_internal_error)

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    debug_mode = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    create_app().run(debug=debug_mode, host='0.0.0.0', port=int(os.getenv('PORT', '4000')))
