from src.models.board import Board, BoardMember, BoardType, BoardRole
from src.models.column import Column
from src.models.card import Card, Comment, CardPriority
from src.models.activity import Activity, ActivityType
from src.models.template import Template
from src.models.team import host_metadata, team_members
