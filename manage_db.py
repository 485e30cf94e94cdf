#!/usr/bin/env python3
"""
Database management script for MeetSpark
"""

import sys
import argparse

# Import database and models
from meetspark.database import init_database
from meetspark.models.event import Event
from meetspark.models.registration import Registration


def init_database_cmd():
    """Initialize database and create tables"""
    database = init_database()
    print("✅ Database tables created")
    database.close()


def list_events():
    """List all events with their participant counts"""
    database = init_database()
    events = Event.select().order_by(Event.created_at.desc())
    if events:
        print("\n📋 Events:")
        print("-" * 90)
        print(f"{'ID':<6} {'Name':<30} {'Organizer':<20} {'Share code':<12} {'Participants'}")
        print("-" * 90)
        for event in events:
            print(f"{event.id:<6} {event.name[:30]:<30} {(event.creator_name or '-')[:20]:<20} "
                  f"{event.share_code:<12} {event.participant_count()}")
    else:
        print("No events found in database")
    database.close()


def list_participants(event_id):
    """List the participants of one event"""
    database = init_database()
    event = Event.get_or_none(Event.id == event_id)
    if not event:
        print(f"❌ Event {event_id} not found")
        database.close()
        sys.exit(1)

    participants = Registration.select().where(Registration.event == event).order_by(Registration.created_at)
    if participants:
        print(f"\n👥 Participants of {event.name}:")
        print("-" * 90)
        print(f"{'ID':<6} {'Name':<25} {'Role':<10} {'Contact':<20} {'Interests'}")
        print("-" * 90)
        for participant in participants:
            print(f"{participant.id:<6} {participant.name[:25]:<25} {participant.role:<10} "
                  f"{participant.telegram_handle[:20]:<20} {', '.join(participant.get_interests())}")
    else:
        print(f"No participants registered for {event.name}")
    database.close()


def main():
    parser = argparse.ArgumentParser(description='Manage MeetSpark database')
    parser.add_argument('command', choices=['init', 'list-events', 'list-participants'],
                        help='Command to execute')
    parser.add_argument('event_id', nargs='?', type=int, help='Event id for list-participants')

    args = parser.parse_args()

    if args.command == 'init':
        init_database_cmd()
    elif args.command == 'list-events':
        list_events()
    elif args.command == 'list-participants':
        if args.event_id is None:
            print("❌ Event id required for list-participants command")
            print("Usage: python manage_db.py list-participants <event_id>")
            sys.exit(1)
        list_participants(args.event_id)


if __name__ == '__main__':
    main()
