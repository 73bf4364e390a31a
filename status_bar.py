import time


def render_status(context, width):
    """
    context keys: status_msg, status_until, focus, file_name, total_rows,
                   shown_rows, filter_state, drag_mode, armed_handle, selected
    """
    text = ""
    now = time.time()
    if context.get('status_msg') and now < context.get('status_until', 0):
        text = f" {context['status_msg']}"
    else:
        mode = 'CMD' if context.get('focus', 0) == 1 else 'GRID'
        if context.get('drag_mode'):
            armed = context.get('armed_handle')
            mode = f"{mode}:DRAG" + (f"[{armed}]" if armed else "")
        fname = context.get('file_name') or 'no file'
        total_rows = context.get('total_rows', 0)
        shown_rows = context.get('shown_rows', total_rows)
        filter_state = context.get('filter_state') or 'none'
        rows_info = f"{shown_rows}/{total_rows} rows"
        if filter_state != 'none':
            rows_info = f"{rows_info} ({filter_state})"
        selected = context.get('selected')
        cell = f"R{selected[0]}C{selected[1] + 1}" if selected else '-'
        text = f" {mode} | {fname} | {rows_info} | {cell}"

    return text.ljust(width)[:width]
