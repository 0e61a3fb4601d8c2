import csv
import io

from apps.places.takeout import TakeoutRow

HEADER = ["Title", "Note", "URL", "Tags", "Comment"]


def maps_url(slug="Joe's+Coffee", hexid="0x89c259a9b3117469:0x40ef0a73d21bb88f"):
    return f"https://www.google.com/maps/place/{slug}/data=!4m2!3m1!1s{hexid}"


def row(line=1, title="Joe's Coffee", url=None, note=None, tags=None, comment=None):
    return TakeoutRow(
        line=line,
        title=title,
        note=note,
        url=url if url is not None else maps_url(),
        tags=tags,
        comment=comment,
    )


def takeout_csv(rows):
    """rows: Title/Note/URL/Tags/Comment 순서의 튜플 목록 → CSV 텍스트"""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(HEADER)
    writer.writerows(rows)
    return buf.getvalue()
