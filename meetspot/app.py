from flask import Flask, request, jsonify, g
from flask_cors import CORS
import logging
import json
from time import perf_counter

from .cache import TTLCache, make_cache_key
from .clustering import VenueClusterer
from .config import Settings, configure_logging
from .errors import MeetspotError
from .maps_service import GoogleMapsService
from .models import SearchRequest, VibePreferences
from .scoring import VenueScorer
from .search import SearchOrchestrator
from .vibe import load_districts, load_keyword_sets

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings, maps_service) -> SearchOrchestrator:
    keywords = load_keyword_sets(settings.vibe_keywords_path)
    clusterer = VenueClusterer(
        radius_meters=settings.cluster_radius_meters,
        min_neighbors=settings.cluster_min_neighbors,
        keywords=keywords,
        districts=load_districts(settings.districts_path),
    )
    scorer = VenueScorer(keywords=keywords, district_radius_meters=settings.district_radius_meters)
    return SearchOrchestrator(maps_service, clusterer=clusterer, scorer=scorer,
                              result_count=settings.result_count)


def _error_response(exc: MeetspotError):
    return jsonify({'success': False, 'error': exc.user_message}), exc.status_code


def create_app(settings: Settings = None, maps_service=None) -> Flask:
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes

    if maps_service is None and settings.has_api_key:
        try:
            logger.info("Initializing Google Maps service...")
            maps_service = GoogleMapsService(
                settings.google_maps_api_key,
                retry_max=settings.maps_retry_max,
                retry_backoff_seconds=settings.maps_retry_backoff_seconds,
                details_cache=TTLCache(settings.details_cache_ttl_seconds),
            )
            logger.info("Google Maps service initialized successfully")
        except ValueError as e:
            logger.error(f"Error initializing Google Maps service: {e}")
            maps_service = None
    elif maps_service is None:
        logger.warning("GOOGLE_MAPS_API_KEY not found or not configured in environment variables")

    orchestrator = build_orchestrator(settings, maps_service) if maps_service else None
    search_cache = TTLCache(settings.search_cache_ttl_seconds)
    app.config['MEETSPOT_SETTINGS'] = settings
    app.config['MEETSPOT_SEARCH_CACHE'] = search_cache

    # Per-request timing: record start time and log duration on completion
    @app.before_request
    def _start_timer():
        g._start_time = perf_counter()

    @app.after_request
    def _log_request_duration(response):
        start = getattr(g, '_start_time', None)
        if start is not None:
            duration_ms = (perf_counter() - start) * 1000.0
            response.headers['X-Process-Time-ms'] = f"{duration_ms:.1f}"
            logger.info(
                "request completed: method=%s path=%s status=%s duration_ms=%.1f remote_addr=%s",
                request.method,
                request.full_path if request.query_string else request.path,
                response.status_code,
                duration_ms,
                request.remote_addr,
            )
        return response

    def _require_service():
        if not orchestrator:
            logger.error("Google Maps API key not configured - cannot process request")
            return jsonify({'success': False, 'error': 'Google Maps API key not configured'}), 500
        return None

    def _addresses(data):
        if not isinstance(data, dict):
            raise ValueError('Request body must be a JSON object')
        address1 = data.get('address1')
        address2 = data.get('address2')
        if not isinstance(address1, str) or not isinstance(address2, str) or not address1 or not address2:
            raise ValueError('Both address1 and address2 are required')
        return address1, address2

    @app.route('/', methods=['GET'])
    def health_check():
        """Health check endpoint"""
        return jsonify({
            'message': 'Meetspot API is running!',
            'endpoints': {
                'geocode': '/api/geocode',
                'midpoint': '/api/midpoint',
                'search': '/api/search',
                'config': '/api/config',
                'health': '/'
            },
            'status': 'healthy'
        })

    @app.route('/api/geocode', methods=['POST'])
    def geocode_address():
        """
        Geocode a single address
        Expected JSON: {"address": "123 Main St, City, State"}
        """
        unavailable = _require_service()
        if unavailable:
            return unavailable

        data = request.get_json(silent=True)
        address = data.get('address') if isinstance(data, dict) else None
        if not address or not isinstance(address, str):
            return jsonify({'success': False, 'error': 'Address is required'}), 400

        try:
            coord = maps_service.geocode_address(address)
        except MeetspotError as e:
            logger.warning(f"Geocoding failed for '{address}': {e!r}")
            return _error_response(e)
        return jsonify({'success': True, 'data': coord.to_dict()})

    @app.route('/api/midpoint', methods=['POST'])
    def compute_midpoint():
        """
        Driving midpoint between two addresses
        Expected JSON: {"address1": "...", "address2": "..."}
        """
        unavailable = _require_service()
        if unavailable:
            return unavailable

        try:
            address1, address2 = _addresses(request.get_json(silent=True))
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        try:
            midpoint = orchestrator.compute_midpoint(address1, address2)
        except MeetspotError as e:
            logger.error(f"Midpoint failed for '{address1}' -> '{address2}': {e!r}", exc_info=True)
            return _error_response(e)
        return jsonify({'success': True, 'data': midpoint.to_dict()})

    @app.route('/api/search', methods=['POST'])
    def search_venues():
        """
        Ranked venues between two addresses
        Expected JSON: {
            "address1": "...",
            "address2": "...",
            "activity_type": "bar",   // bar | restaurant | cafe | park | any
            "price_range": "$$",      // optional: any | $ | $$ | $$$ | $$$$
            "preferences": {"venue_style": 0.5, "neighborhood_vibe": 0.5, "location_priority": 0.5},
            "result_count": 6         // optional
        }
        """
        logger.info("=== SEARCH REQUEST ===")
        unavailable = _require_service()
        if unavailable:
            return unavailable

        data = request.get_json(silent=True)
        logger.info(f"Request data received: {json.dumps(data) if data else 'None'}")
        try:
            address1, address2 = _addresses(data)
            raw_preferences = data.get('preferences') or {}
            if not isinstance(raw_preferences, dict):
                raise ValueError('preferences must be a JSON object')
            preferences = VibePreferences.from_dict(raw_preferences)
            result_count = data.get('result_count')
            if result_count is not None and (isinstance(result_count, bool) or not isinstance(result_count, int)
                                             or not 1 <= result_count <= 20):
                raise ValueError('result_count must be an integer between 1 and 20')
            activity_type = data.get('activity_type') or 'any'
            price_range = data.get('price_range') or 'any'
            if not isinstance(activity_type, str) or not isinstance(price_range, str):
                raise ValueError('activity_type and price_range must be strings')
            search_request = SearchRequest(
                origin_address=address1,
                destination_address=address2,
                activity_type=activity_type,
                price_range=price_range,
                preferences=preferences,
                result_count=result_count,
            )
            key = make_cache_key(address1, address2, activity_type, price_range,
                                 raw_preferences, result_count)
            cached = search_cache.get(key)
            if cached is not None:
                logger.info("Search cache hit")
                return jsonify({'success': True, 'data': cached})

            _start = perf_counter()
            result = orchestrator.search(search_request)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        except MeetspotError as e:
            logger.error(f"Search failed: {e!r}", exc_info=True)
            return _error_response(e)

        logger.info(
            "Search finished in %.1f ms: %d venues, %d clusters",
            (perf_counter() - _start) * 1000.0, len(result.venues), len(result.clusters),
        )
        payload = result.to_dict()
        search_cache.set(key, payload)
        return jsonify({'success': True, 'data': payload})

    @app.route('/api/config', methods=['GET'])
    def get_config():
        """
        Get frontend configuration including Google Maps API key
        """
        return jsonify({
            'success': True,
            'data': {
                'googleMapsApiKey': settings.google_maps_api_key if settings.has_api_key else None,
                'apiBaseUrl': request.host_url.rstrip('/')
            }
        })

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'error': 'Endpoint not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    return app


def main():
    settings = Settings.from_env()
    configure_logging(settings)
    app = create_app(settings)
    if not settings.has_api_key:
        print("\n" + "="*50)
        print("SETUP REQUIRED:")
        print("="*50)
        print("1. Get a Google Maps API key from: https://console.cloud.google.com/")
        print("2. Enable the following APIs:")
        print("   - Geocoding API")
        print("   - Directions API")
        print("   - Places API")
        print("3. Put GOOGLE_MAPS_API_KEY=<your key> in the .env file")
        print("4. Restart the app")
        print("="*50)
        print("API will start but most features will be disabled without a valid key\n")
    app.run(host='0.0.0.0', port=5001, debug=False)


if __name__ == '__main__':
    main()
