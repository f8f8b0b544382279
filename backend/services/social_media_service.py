"""
Social Media Service
Mock social media feed for disasters plus user-generated posts stored in Firebase
"""
from datetime import datetime, timedelta, timezone
import logging
import random

from bleach import clean

logger = logging.getLogger(__name__)

# First keyword found in the disaster title decides the post theme
TITLE_KEYWORDS = (
    ('flood', 'flood'),
    ('wildfire', 'fire'),
    ('fire', 'fire'),
    ('hurricane', 'hurricane'),
    ('earthquake', 'earthquake'),
    ('tornado', 'tornado'),
    ('storm', 'storm'),
)

# (id, template, user, minutes ago, likes, retweets, verified, platform)
POST_TEMPLATES = (
    ('1', "#{type}relief Need immediate assistance in {location}. Roads are blocked and people need help evacuating.",
     'citizen_emergency', 30, 45, 12, False, 'Twitter'),
    ('2', "Just saw emergency vehicles heading towards {location}. Stay safe everyone! #{type} #emergency",
     'local_reporter', 45, 89, 23, True, 'Twitter'),
    ('3', "FEMA teams are on the ground in {location}. If you need shelter, go to the community center on Main St. #{type}response",
     'FEMA_Official', 60, 156, 67, True, 'Twitter'),
    ('4', "Power is out in {location}. Red Cross is setting up emergency shelters. Please share this information. #{type} #help",
     'redcross_volunteer', 90, 234, 89, True, 'Twitter'),
    ('5', "Anyone have information about the {type} in {location}? My family is there and I can't reach them. #worried",
     'concerned_family', 120, 67, 34, False, 'Twitter'),
    ('6', "Local hospitals in {location} are at capacity. Please only go to ER for life-threatening emergencies. #{type} #healthcare",
     'health_official', 150, 189, 45, True, 'Twitter'),
    ('7', "Volunteers needed for {type} relief in {location}. Contact @local_emergency for coordination. #volunteer #help",
     'emergency_coord', 180, 123, 56, True, 'Twitter'),
    ('8', "Breaking: {type} has affected {location}. Authorities are asking residents to stay indoors. #breaking #{type}",
     'news_alert', 240, 456, 234, True, 'Twitter'),
    ('9', "Just checked in with local authorities. The {type} situation in {location} is being managed. Stay informed and follow official updates.",
     'bsky.emergency.info', 75, 78, 23, True, 'Bluesky'),
    ('10', "Community support is amazing! People in {location} are helping each other during this {type}. Humanity at its best.",
     'bsky.community.helper', 105, 145, 67, False, 'Bluesky'),
)

ALLOWED_PLATFORMS = ('Twitter', 'Bluesky', 'Facebook', 'Instagram', 'Mastodon')
MAX_POST_LENGTH = 1000


def classify_disaster_title(title):
    """
    Map a disaster title to a short disaster type used in hashtags

    Examples:
        >>> classify_disaster_title('Downtown Flood')
        'flood'
        >>> classify_disaster_title(None)
        'disaster'
    """
    if not title:
        return 'disaster'

    lowered = title.lower()
    for keyword, disaster_type in TITLE_KEYWORDS:
        if keyword in lowered:
            return disaster_type
    return 'disaster'


def generate_mock_posts(disaster_type, location, now=None):
    """
    Build the mock feed for a disaster type and location

    Args:
        disaster_type (str): e.g. 'flood'
        location (str): e.g. 'Springfield'
        now (datetime): Reference time for post timestamps

    Returns:
        list: Post dicts, Twitter posts first then Bluesky
    """
    if now is None:
        now = datetime.now(timezone.utc)

    posts = []
    for post_id, template, user, minutes_ago, likes, retweets, verified, platform in POST_TEMPLATES:
        posts.append({
            'id': post_id,
            'post': template.format(type=disaster_type, location=location),
            'user': user,
            'timestamp': (now - timedelta(minutes=minutes_ago)).isoformat(),
            'likes': likes,
            'retweets': retweets,
            'verified': verified,
            'platform': platform,
        })
    return posts


class SocialMediaService:
    """Mock feeds (cached) and user posts for disasters"""

    POSTS_PATH = 'social_media_posts'
    CACHE_TTL_SECONDS = 300
    DEFAULT_USER_ID = 'netrunnerX'

    def __init__(self, cache_manager, db=None, rng=None, cache_ttl_seconds=CACHE_TTL_SECONDS):
        """
        Args:
            cache_manager: CacheManager instance
            db: Module or object exposing reference(path); defaults to firebase_admin.db
            rng: random.Random used for engagement jitter
        """
        if db is None:
            from firebase_admin import db as firebase_db
            db = firebase_db
        self.cache_manager = cache_manager
        self.db = db
        self.rng = rng or random.Random()
        self.cache_ttl_seconds = cache_ttl_seconds

    @staticmethod
    def disaster_cache_key(disaster_id, disaster_type):
        return f"disaster_social_{disaster_id}_{disaster_type}"

    def get_mock_feed(self, disaster_type='disaster', location='affected area'):
        """
        General mock feed with ±20% jitter on likes and retweets

        Returns:
            dict: {'posts': [...], 'metadata': {...}}
        """
        cache_key = f"social_media_{disaster_type}_{location}"
        cached = self.cache_manager.get(cache_key)
        if cached:
            logger.info(f"Social media posts fetched from cache: {cache_key}")
            return cached

        posts = generate_mock_posts(disaster_type, location)
        for post in posts:
            post['likes'] = int(post['likes'] * (0.8 + self.rng.random() * 0.4))
            post['retweets'] = int(post['retweets'] * (0.8 + self.rng.random() * 0.4))

        feed = {
            'posts': posts,
            'metadata': {
                'total_posts': len(posts),
                'disaster_type': disaster_type,
                'location': location,
                'generated_at': datetime.now(timezone.utc).isoformat(),
                'source': 'Mock Social Media API',
            }
        }
        self.cache_manager.set(cache_key, feed, ttl_seconds=self.cache_ttl_seconds)
        return feed

    def get_disaster_feed(self, disaster_id, title=None, location_name=None):
        """
        Mock feed themed on a specific disaster

        Returns:
            dict: {'posts': [...], 'metadata': {...}}
        """
        disaster_type = classify_disaster_title(title)
        location = location_name or 'affected area'
        cache_key = self.disaster_cache_key(disaster_id, disaster_type)

        cached = self.cache_manager.get(cache_key)
        if cached:
            logger.info(f"Disaster social media posts fetched from cache: {cache_key}")
            return cached

        posts = generate_mock_posts(disaster_type, location)
        feed = {
            'posts': posts,
            'metadata': {
                'disaster_id': disaster_id,
                'disaster_type': disaster_type,
                'location': location,
                'total_posts': len(posts),
                'generated_at': datetime.now(timezone.utc).isoformat(),
            }
        }
        self.cache_manager.set(cache_key, feed, ttl_seconds=self.cache_ttl_seconds)
        return feed

    @staticmethod
    def validate_post(data):
        """
        Validate a user post payload

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not isinstance(data, dict):
            return False, "Request body must be a JSON object"
        if not data.get('disaster_id') or not data.get('content'):
            return False, "disaster_id and content are required"
        if not isinstance(data['content'], str):
            return False, "content must be a string"
        if len(data['content']) > MAX_POST_LENGTH:
            return False, f"content must be at most {MAX_POST_LENGTH} characters"
        platform = data.get('platform', 'Twitter')
        if platform not in ALLOWED_PLATFORMS:
            return False, f"platform must be one of: {', '.join(ALLOWED_PLATFORMS)}"
        return True, None

    def create_post(self, disaster_id, content, platform='Twitter', user_id=None):
        """
        Store a user post and drop cached feeds for the disaster

        Returns:
            dict: Stored post including its generated 'id'
        """
        post = {
            'disaster_id': str(disaster_id),
            'content': clean(content, tags=[], strip=True).strip(),
            'platform': platform,
            'user_id': user_id or self.DEFAULT_USER_ID,
            'likes': 0,
            'retweets': 0,
            'verified': False,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'source': 'User Generated',
        }

        ref = self.db.reference(self.POSTS_PATH).push(post)

        self.cache_manager.invalidate('disaster_social_*')

        return {**post, 'id': ref.key}

    def invalidate_disaster_feeds(self, disaster_id):
        return self.cache_manager.invalidate(f"disaster_social_{disaster_id}_*")

    def get_user_posts(self, disaster_id):
        """User posts for a disaster, newest first"""
        records = (
            self.db.reference(self.POSTS_PATH)
            .order_by_child('disaster_id')
            .equal_to(str(disaster_id))
            .get()
        ) or {}

        posts = [
            {**record, 'id': post_id}
            for post_id, record in records.items()
            if isinstance(record, dict)
        ]
        posts.sort(key=lambda post: post.get('timestamp', ''), reverse=True)
        return posts
