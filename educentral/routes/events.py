from datetime import date

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort

from educentral.decorators import auth_required, role_required
from educentral import firestore_dao as dao
from educentral.forms import EventForm
from educentral.roles import ADMIN

bp = Blueprint('events', __name__, url_prefix='/events')


def _form_data(form):
    return {
        'title': form.title.data.strip(),
        'description': form.description.data or '',
        'date': form.date.data.isoformat(),
        'startTime': form.start_time.data or None,
        'endTime': form.end_time.data or None,
        'location': form.location.data or '',
        'category': form.category.data,
    }


@bp.route('/')
@auth_required
def list_events():
    today = date.today().isoformat()
    events = dao.get_all_events()
    upcoming = [e for e in events if (e.get('date') or '') >= today]
    past = [e for e in events if (e.get('date') or '') < today][::-1]
    return render_template('events/list.html', upcoming=upcoming, past=past)


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN)
def new_event():
    form = EventForm()
    if form.validate_on_submit():
        dao.create_event(_form_data(form))
        flash('Acara berhasil ditambahkan.', 'success')
        return redirect(url_for('events.list_events'))
    return render_template('events/form.html', form=form, title='Tambah Acara')


@bp.route('/<event_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN)
def edit_event(event_id):
    event = dao.get_event(event_id)
    if not event:
        abort(404)
    form = EventForm()
    if request.method == 'GET':
        form.title.data = event.get('title')
        form.description.data = event.get('description')
        form.date.data = date.fromisoformat(event['date']) if event.get('date') else None
        form.start_time.data = event.get('startTime')
        form.end_time.data = event.get('endTime')
        form.location.data = event.get('location')
        form.category.data = event.get('category')
    if form.validate_on_submit():
        dao.update_event(event_id, _form_data(form))
        flash('Acara berhasil diperbarui.', 'success')
        return redirect(url_for('events.list_events'))
    return render_template('events/form.html', form=form, title='Ubah Acara')


@bp.route('/<event_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_event(event_id):
    if not dao.get_event(event_id):
        abort(404)
    dao.delete_event(event_id)
    flash('Acara dihapus.', 'success')
    return redirect(url_for('events.list_events'))
