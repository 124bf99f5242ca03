from sqlalchemy import MetaData, Table, Column, String

# Таблицы хост-приложения. Отдельная MetaData: плагин их не создаёт и не мигрирует.
host_metadata = MetaData()

team_members = Table(
    "team_members",
    host_metadata,
    Column("team_id", String, primary_key=True),
    Column("user_id", String, primary_key=True),
)
