from cubedraft import db, bcrypt
from flask_login import UserMixin
import json
import string
import random
import time


def _load_json(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    @property
    def draft_user_id(self):
        """Identity used for seats when the player is logged in."""
        return f"user-{self.id}"

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'draft_user_id': self.draft_user_id,
        }


def generate_room_code(length=4):
    """Generate a unique, short room code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not DraftSession.query.filter_by(room_code=code).first():
            return code


class DraftSession(db.Model):
    __tablename__ = 'draft_session'
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(4), unique=True, index=True, nullable=False)
    host_id = db.Column(db.String(64), nullable=False)
    cube_id = db.Column(db.String(128), nullable=False)
    game_id = db.Column(db.String(32), nullable=False, default='yugioh')
    mode = db.Column(db.String(32), nullable=False, default='pack')  # pack, auction-grid
    player_count = db.Column(db.Integer, nullable=False, default=8)
    cards_per_player = db.Column(db.Integer, nullable=False, default=45)
    pack_size = db.Column(db.Integer, nullable=False, default=15)
    burned_per_pack = db.Column(db.Integer, nullable=False, default=0)
    timer_seconds = db.Column(db.Integer, nullable=False, default=60)
    status = db.Column(db.String(32), nullable=False, default='waiting', index=True)  # waiting, in_progress, completed, cancelled
    paused = db.Column(db.Boolean, nullable=False, default=False)
    current_pack = db.Column(db.Integer, nullable=False, default=1)
    current_pick = db.Column(db.Integer, nullable=False, default=1)
    direction = db.Column(db.String(8), nullable=False, default='left')
    pack_data = db.Column(db.Text, nullable=True)  # JSON-encoded list of packs
    pick_started_at = db.Column(db.Float, nullable=True)
    paused_at = db.Column(db.Float, nullable=True)
    time_remaining_at_pause = db.Column(db.Integer, nullable=True)
    resume_at = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.Float, nullable=False, default=time.time)
    started_at = db.Column(db.Float, nullable=True)
    completed_at = db.Column(db.Float, nullable=True)
    # Auction grid
    current_grid = db.Column(db.Integer, nullable=True)
    current_selector_seat = db.Column(db.Integer, nullable=True)
    grid_data = db.Column(db.Text, nullable=True)  # JSON-encoded list of grids
    auction_state = db.Column(db.Text, nullable=True)  # JSON-encoded dict
    selection_started_at = db.Column(db.Float, nullable=True)

    players = db.relationship(
        'DraftPlayer', back_populates='session', order_by='DraftPlayer.seat_position',
        cascade='all, delete-orphan',
    )

    def __init__(self, **kwargs):
        super(DraftSession, self).__init__(**kwargs)
        if not self.room_code:
            self.room_code = generate_room_code()

    @property
    def packs(self):
        return _load_json(self.pack_data, [])

    @packs.setter
    def packs(self, value):
        self.pack_data = json.dumps(value)

    @property
    def grids(self):
        return _load_json(self.grid_data, [])

    @grids.setter
    def grids(self, value):
        self.grid_data = json.dumps(value)

    @property
    def auction(self):
        return _load_json(self.auction_state, None)

    @auction.setter
    def auction(self, value):
        self.auction_state = json.dumps(value) if value is not None else None

    @property
    def is_auction(self):
        return self.mode == 'auction-grid'

    @property
    def picks_per_pack(self):
        return self.pack_size - self.burned_per_pack

    @property
    def packs_per_player(self):
        per_pack = self.picks_per_pack
        if per_pack <= 0:
            return 0
        return -(-self.cards_per_player // per_pack)

    @property
    def host(self):
        return next((p for p in self.players if p.is_host), None)

    def player_for(self, user_id):
        return next((p for p in self.players if p.user_id == user_id), None)

    def to_dict(self):
        return {
            'id': self.id,
            'room_code': self.room_code,
            'host_id': self.host_id,
            'cube_id': self.cube_id,
            'game_id': self.game_id,
            'mode': self.mode,
            'player_count': self.player_count,
            'cards_per_player': self.cards_per_player,
            'pack_size': self.pack_size,
            'burned_per_pack': self.burned_per_pack,
            'timer_seconds': self.timer_seconds,
            'status': self.status,
            'paused': self.paused,
            'current_pack': self.current_pack,
            'current_pick': self.current_pick,
            'direction': self.direction,
            'packs_per_player': self.packs_per_player,
            'pick_started_at': self.pick_started_at,
            'paused_at': self.paused_at,
            'time_remaining_at_pause': self.time_remaining_at_pause,
            'resume_at': self.resume_at,
            'created_at': self.created_at,
            'started_at': self.started_at,
            'completed_at': self.completed_at,
            'current_grid': self.current_grid,
            'current_selector_seat': self.current_selector_seat,
            'auction_state': self.auction,
            'selection_started_at': self.selection_started_at,
        }


class DraftPlayer(db.Model):
    __tablename__ = 'draft_player'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'user_id', name='uq_draft_player_user'),
        db.UniqueConstraint('session_id', 'seat_position', name='uq_draft_player_seat'),
    )
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('draft_session.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(64), nullable=False)
    seat_position = db.Column(db.Integer, nullable=False)
    is_host = db.Column(db.Boolean, nullable=False, default=False)
    is_bot = db.Column(db.Boolean, nullable=False, default=False)
    # None means unknown; presence falls back to last_seen_at staleness
    is_connected = db.Column(db.Boolean, nullable=True, default=True)
    current_hand = db.Column(db.Text, nullable=True)  # JSON-encoded list of card ids
    pick_made = db.Column(db.Boolean, nullable=False, default=False)
    last_seen_at = db.Column(db.Float, nullable=True, default=time.time)
    bidding_points = db.Column(db.Integer, nullable=False, default=100)
    cards_acquired_this_grid = db.Column(db.Integer, nullable=False, default=0)
    session = db.relationship('DraftSession', back_populates='players')

    @property
    def hand(self):
        return _load_json(self.current_hand, [])

    @hand.setter
    def hand(self, value):
        self.current_hand = json.dumps(list(value))

    def to_dict(self, include_hand=False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'seat_position': self.seat_position,
            'is_host': self.is_host,
            'is_bot': self.is_bot,
            'is_connected': self.is_connected,
            'pick_made': self.pick_made,
            'last_seen_at': self.last_seen_at,
            'bidding_points': self.bidding_points,
            'cards_acquired_this_grid': self.cards_acquired_this_grid,
            'hand_size': len(self.hand),
        }
        if include_hand:
            data['current_hand'] = self.hand
        return data


class DraftPick(db.Model):
    __tablename__ = 'draft_pick'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'card_id', name='uq_draft_pick_card'),
        db.UniqueConstraint('session_id', 'player_id', 'pack_number', 'pick_number', name='uq_draft_pick_slot'),
    )
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('draft_session.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('draft_player.id'), nullable=False, index=True)
    card_id = db.Column(db.Integer, nullable=False)
    pack_number = db.Column(db.Integer, nullable=False)
    pick_number = db.Column(db.Integer, nullable=False)
    pick_time_seconds = db.Column(db.Integer, nullable=True)
    was_auto_pick = db.Column(db.Boolean, nullable=False, default=False)
    picked_at = db.Column(db.Float, nullable=False, default=time.time)

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'card_id': self.card_id,
            'pack_number': self.pack_number,
            'pick_number': self.pick_number,
            'pick_time_seconds': self.pick_time_seconds,
            'was_auto_pick': self.was_auto_pick,
            'picked_at': self.picked_at,
        }


class DraftBurnedCard(db.Model):
    __tablename__ = 'draft_burned_card'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('draft_session.id'), nullable=False, index=True)
    card_id = db.Column(db.Integer, nullable=False)
    pack_number = db.Column(db.Integer, nullable=False)
    burned_from_seat = db.Column(db.Integer, nullable=True)

    def to_dict(self):
        return {
            'card_id': self.card_id,
            'pack_number': self.pack_number,
            'burned_from_seat': self.burned_from_seat,
        }


class AuctionBid(db.Model):
    __tablename__ = 'auction_bid'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('draft_session.id'), nullable=False, index=True)
    grid_number = db.Column(db.Integer, nullable=False)
    card_id = db.Column(db.Integer, nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('draft_player.id'), nullable=False)
    bid_amount = db.Column(db.Integer, nullable=True)
    is_pass = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.Float, nullable=False, default=time.time)

    def to_dict(self):
        return {
            'grid_number': self.grid_number,
            'card_id': self.card_id,
            'player_id': self.player_id,
            'bid_amount': self.bid_amount,
            'is_pass': self.is_pass,
        }
