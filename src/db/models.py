# Все модели плагина, чтобы init_db создал их таблицы
from src.db.base import Base
from src.models.board import Board, BoardMember, BoardType, BoardRole
from src.models.column import Column
from src.models.card import Card, Comment, CardPriority
from src.models.activity import Activity, ActivityType
from src.models.template import Template
