"""Initial chain schema: registry, readings, challans, FIRs, cases, sequences, OTPs, API keys.

Revision ID: 001
Revises:
Create Date: 2025-01-01
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Registry
    op.create_table(
        'police_stations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_name', sa.String(255), nullable=False),
        sa.Column('station_code', sa.String(50), nullable=False),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('district', sa.String(100), nullable=True),
        sa.Column('province', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_police_stations_id', 'police_stations', ['id'])
    op.create_index('ix_police_stations_station_code', 'police_stations', ['station_code'], unique=True)

    op.create_table(
        'courts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('court_name', sa.String(255), nullable=False),
        sa.Column('court_type', sa.String(100), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('district', sa.String(100), nullable=True),
        sa.Column('province', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_courts_id', 'courts', ['id'])

    op.create_table(
        'police_officers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('badge_number', sa.String(50), nullable=True),
        sa.Column('rank', sa.String(100), nullable=True),
        sa.Column('is_investigation_officer', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['station_id'], ['police_stations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('badge_number')
    )
    op.create_index('ix_police_officers_id', 'police_officers', ['id'])
    op.create_index('ix_police_officers_station_id', 'police_officers', ['station_id'])

    op.create_table(
        'judges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('court_id', sa.Integer(), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('rank', sa.String(100), nullable=True),
        sa.Column('service_status', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['court_id'], ['courts.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_judges_id', 'judges', ['id'])
    op.create_index('ix_judges_court_id', 'judges', ['court_id'])

    op.create_table(
        'accused',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('cnic', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('contact', sa.String(50), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('province', sa.String(100), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_accused_id', 'accused', ['id'])
    op.create_index('ix_accused_cnic', 'accused', ['cnic'])

    op.create_table(
        'vehicles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('plate_number', sa.String(50), nullable=False),
        sa.Column('make', sa.String(100), nullable=True),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('chassis_no', sa.String(100), nullable=True),
        sa.Column('engine_no', sa.String(100), nullable=True),
        sa.Column('registration_year', sa.Integer(), nullable=True),
        sa.Column('owner_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['accused.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_vehicles_id', 'vehicles', ['id'])
    op.create_index('ix_vehicles_plate_number', 'vehicles', ['plate_number'])
    op.create_index('ix_vehicles_owner_id', 'vehicles', ['owner_id'])

    op.create_table(
        'violations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('violation_type', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('penalty_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('section_of_law', sa.String(255), nullable=True),
        sa.Column('is_cognizable', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_violations_id', 'violations', ['id'])

    op.create_table(
        'iot_devices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('device_name', sa.String(255), nullable=False),
        sa.Column('firmware_version', sa.String(50), nullable=True),
        sa.Column('is_registered', sa.Boolean(), nullable=False),
        sa.Column('is_calibrated', sa.Boolean(), nullable=False),
        sa.Column('calibration_date', sa.DateTime(), nullable=True),
        sa.Column('calibration_certificate_no', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('paired_officer_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['paired_officer_id'], ['police_officers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('device_name')
    )
    op.create_index('ix_iot_devices_id', 'iot_devices', ['id'])

    # Evidence
    op.create_table(
        'emission_readings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.Integer(), nullable=False),
        sa.Column('co', sa.Numeric(10, 2), nullable=True),
        sa.Column('co2', sa.Numeric(10, 2), nullable=True),
        sa.Column('hc', sa.Numeric(10, 2), nullable=True),
        sa.Column('nox', sa.Numeric(10, 2), nullable=True),
        sa.Column('sound_level_dba', sa.Numeric(6, 2), nullable=False),
        sa.Column('captured_at', sa.DateTime(), nullable=False),
        sa.Column('ml_classification', sa.String(100), nullable=True),
        sa.Column('signature_value', sa.Text(), nullable=False),
        sa.Column('signature_alg', sa.String(50), nullable=False),
        sa.Column('signature_key_id', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['device_id'], ['iot_devices.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_emission_readings_id', 'emission_readings', ['id'])
    op.create_index('ix_emission_readings_device_id', 'emission_readings', ['device_id'])
    op.create_index('ix_emission_readings_captured_at', 'emission_readings', ['captured_at'])

    op.create_table(
        'integrity_flags',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reading_id', sa.Integer(), nullable=False),
        sa.Column('stored_signature', sa.Text(), nullable=False),
        sa.Column('computed_signature', sa.Text(), nullable=True),
        sa.Column('detected_at', sa.DateTime(), nullable=False),
        sa.Column('reviewed', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['reading_id'], ['emission_readings.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_integrity_flags_id', 'integrity_flags', ['id'])
    op.create_index('ix_integrity_flags_reading_id', 'integrity_flags', ['reading_id'])
    op.create_index('ix_integrity_flags_detected_at', 'integrity_flags', ['detected_at'])

    # Chain
    op.create_table(
        'challans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('officer_id', sa.Integer(), nullable=False),
        sa.Column('accused_id', sa.Integer(), nullable=False),
        sa.Column('vehicle_id', sa.Integer(), nullable=False),
        sa.Column('violation_id', sa.Integer(), nullable=False),
        sa.Column('emission_reading_id', sa.Integer(), nullable=True),
        sa.Column('issued_at', sa.DateTime(), nullable=False),
        sa.Column('due_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('signature_value', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['officer_id'], ['police_officers.id'], ),
        sa.ForeignKeyConstraint(['accused_id'], ['accused.id'], ),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ),
        sa.ForeignKeyConstraint(['violation_id'], ['violations.id'], ),
        sa.ForeignKeyConstraint(['emission_reading_id'], ['emission_readings.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('emission_reading_id')
    )
    op.create_index('ix_challans_id', 'challans', ['id'])
    op.create_index('ix_challans_officer_id', 'challans', ['officer_id'])
    op.create_index('ix_challans_accused_id', 'challans', ['accused_id'])
    op.create_index('ix_challans_vehicle_id', 'challans', ['vehicle_id'])

    op.create_table(
        'firs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('fir_no', sa.String(100), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('challan_id', sa.Integer(), nullable=False),
        sa.Column('informant_id', sa.Integer(), nullable=False),
        sa.Column('filed_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('investigation_report', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['station_id'], ['police_stations.id'], ),
        sa.ForeignKeyConstraint(['challan_id'], ['challans.id'], ),
        sa.ForeignKeyConstraint(['informant_id'], ['police_officers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('challan_id'),
        sa.UniqueConstraint('station_id', 'year', 'sequence', name='uq_fir_station_year_sequence'),
        sa.UniqueConstraint('station_id', 'fir_no', name='uq_fir_station_fir_no')
    )
    op.create_index('ix_firs_id', 'firs', ['id'])
    op.create_index('ix_firs_fir_no', 'firs', ['fir_no'])
    op.create_index('ix_firs_station_id', 'firs', ['station_id'])

    op.create_table(
        'cases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('case_no', sa.String(100), nullable=False),
        sa.Column('fir_id', sa.Integer(), nullable=False),
        sa.Column('court_id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('judge_id', sa.Integer(), nullable=False),
        sa.Column('case_type', sa.String(100), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('hearing_date', sa.DateTime(), nullable=True),
        sa.Column('filed_at', sa.DateTime(), nullable=False),
        sa.Column('verdict', sa.Text(), nullable=True),
        sa.Column('verdict_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['fir_id'], ['firs.id'], ),
        sa.ForeignKeyConstraint(['court_id'], ['courts.id'], ),
        sa.ForeignKeyConstraint(['judge_id'], ['judges.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('fir_id'),
        sa.UniqueConstraint('court_id', 'year', 'sequence', name='uq_case_court_year_sequence'),
        sa.UniqueConstraint('court_id', 'case_no', name='uq_case_court_case_no')
    )
    op.create_index('ix_cases_id', 'cases', ['id'])
    op.create_index('ix_cases_case_no', 'cases', ['case_no'])
    op.create_index('ix_cases_court_id', 'cases', ['court_id'])
    op.create_index('ix_cases_judge_id', 'cases', ['judge_id'])

    op.create_table(
        'case_statements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('case_id', sa.Integer(), nullable=False),
        sa.Column('statement_by', sa.String(255), nullable=False),
        sa.Column('statement_text', sa.Text(), nullable=False),
        sa.Column('statement_date', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_case_statements_id', 'case_statements', ['id'])
    op.create_index('ix_case_statements_case_id', 'case_statements', ['case_id'])

    # Counters
    op.create_table(
        'scope_sequences',
        sa.Column('scope_kind', sa.String(20), nullable=False),
        sa.Column('scope_id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('last_sequence', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('scope_kind', 'scope_id', 'year')
    )

    # Public status
    op.create_table(
        'public_status_otps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vehicle_no', sa.String(50), nullable=False),
        sa.Column('cnic', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('code_digest', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('failed_attempts', sa.Integer(), nullable=False),
        sa.Column('access_token_digest', sa.String(255), nullable=True),
        sa.Column('access_token_expires_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_public_status_otps_id', 'public_status_otps', ['id'])
    op.create_index('ix_public_status_otps_vehicle_no', 'public_status_otps', ['vehicle_no'])
    op.create_index('ix_public_status_otps_cnic', 'public_status_otps', ['cnic'])
    op.create_index(
        'ix_public_status_otps_access_token_digest', 'public_status_otps', ['access_token_digest'], unique=True
    )

    # Authority credentials
    op.create_table(
        'api_keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(16), nullable=False),
        sa.Column('digest', sa.String(255), nullable=False),
        sa.Column('label', sa.String(255), nullable=True),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=True),
        sa.Column('court_id', sa.Integer(), nullable=True),
        sa.Column('officer_id', sa.Integer(), nullable=True),
        sa.Column('judge_id', sa.Integer(), nullable=True),
        sa.Column('device_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('digest')
    )
    op.create_index('ix_api_keys_id', 'api_keys', ['id'])
    op.create_index('ix_api_keys_prefix', 'api_keys', ['prefix'])


def downgrade() -> None:
    op.drop_table('api_keys')
    op.drop_table('public_status_otps')
    op.drop_table('scope_sequences')
    op.drop_table('case_statements')
    op.drop_table('cases')
    op.drop_table('firs')
    op.drop_table('challans')
    op.drop_table('integrity_flags')
    op.drop_table('emission_readings')
    op.drop_table('iot_devices')
    op.drop_table('violations')
    op.drop_table('vehicles')
    op.drop_table('accused')
    op.drop_table('judges')
    op.drop_table('police_officers')
    op.drop_table('courts')
    op.drop_table('police_stations')
