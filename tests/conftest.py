"""Shared export snapshots for the engine tests."""
from __future__ import annotations

import pytest


def status_row(name, logged_in, on_queue='0:00:00.000', brk='0:00:00.000', meal='0:00:00.000',
               away='0:00:00.000', not_responding='0:00:00.000', off_queue='0:00:00.000'):
    return {
        'Agent Name': name, 'Logged In': logged_in, 'On Queue': on_queue,
        'Break': brk, 'Meal': meal, 'Away': away,
        'Not Responding': not_responding, 'Off Queue': off_queue,
    }


def performance_row(name, answered, transferred='0', held='0', avg_handle='0:00:00.000'):
    return {'Agent Name': name, 'Answered': answered, 'Transferred': transferred,
            'Held': held, 'Avg Handle': avg_handle}


def interaction_row(direction='Inbound', queue='Sales', abandoned='NO', wait='0:00:00.000',
                    handle='0:00:00.000', acw='0:00:00.000', agent=''):
    return {'Initial Direction': direction, 'Queue': queue, 'Abandoned': abandoned,
            'Total Queue': wait, 'Total Handle': handle, 'Total ACW': acw,
            'Users - Interacted': agent}


@pytest.fixture
def sample_tables():
    """Two real agents plus noise rows, nine answered calls and one abandoned.

    Performance reports 8 answered calls while interactions show 9, so the
    two sources sit 12.5% apart.
    """
    status = [
        status_row('Alice', '2:00:00.000', on_queue='1:30:00.000',
                   brk='0:10:00.000', meal='0:20:00.000'),
        status_row('Bob', '2:00:00.000', on_queue='1:00:00.000', brk='0:15:00.000',
                   meal='0:30:00.000', away='0:05:00.000', off_queue='0:10:00.000'),
        status_row('Template Agent', '1:00:00.000', on_queue='1:00:00.000'),
        status_row('Carol', '0:00:00.000'),
    ]
    performance = [
        performance_row('Alice', '5', transferred='1', held='1', avg_handle='0:05:00.000'),
        performance_row('Bob', '3', transferred='1', avg_handle='0:04:00.000'),
        performance_row('Template Agent', '10', transferred='5'),
        performance_row('Dave', 'n/a'),
    ]
    interactions = []
    for i, wait in enumerate((10, 20, 30, 40, 50, 60, 70, 80)):
        interactions.append(interaction_row(
            queue='Sales' if i < 4 else 'Support', wait=f'0:{wait // 60:02d}:{wait % 60:02d}.000',
            handle='0:05:00.000', acw='0:01:00.000', agent='Alice' if i < 5 else 'Bob'))
    interactions.append(interaction_row(queue='Sales', abandoned='YES', wait='0:01:30.000'))
    interactions.append(interaction_row(direction='Outbound', queue='Outbound', handle='0:02:00.000',
                                        agent='Bob'))
    interactions.append(interaction_row(direction='', queue='Sales'))
    return {
        'agentStatus': status,
        'agentPerformance': performance,
        'interactions': interactions,
        'adherence': [],
        'timeSummary': [],
    }
