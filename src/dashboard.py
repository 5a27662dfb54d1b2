"""
Streamlit dashboard for browsing tracking runs.
"""

import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from database import TrackingDatabase


def create_track_figure(track_df, target_color="#ff0000", frame_size=None):
    """
    Plot a track in image coordinates.

    Args:
        track_df: DataFrame with frame_index, x, y columns
        target_color: Marker color used for the path
        frame_size: Optional (width, height) to fix the axes to the frame

    Returns:
        Plotly figure object
    """
    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=track_df['x'],
        y=track_df['y'],
        mode='lines+markers',
        name='Marker path',
        line=dict(color=target_color, width=2),
        marker=dict(size=5),
        customdata=track_df['frame_index'],
        hovertemplate="Frame %{customdata}<br>x=%{x}, y=%{y}<extra></extra>"
    ))

    # Start and end markers
    fig.add_trace(go.Scatter(
        x=[track_df['x'].iloc[0]], y=[track_df['y'].iloc[0]],
        mode='markers', name='Start',
        marker=dict(color='green', size=12, symbol='circle')
    ))
    fig.add_trace(go.Scatter(
        x=[track_df['x'].iloc[-1]], y=[track_df['y'].iloc[-1]],
        mode='markers', name='End',
        marker=dict(color='black', size=12, symbol='x')
    ))

    # Image rows grow downwards
    fig.update_yaxes(autorange="reversed", scaleanchor="x", scaleratio=1)
    if frame_size is not None:
        width, height = frame_size
        fig.update_xaxes(range=[0, width])
        fig.update_yaxes(range=[height, 0])

    fig.update_layout(
        xaxis_title="x (pixels)",
        yaxis_title="y (pixels)",
        hovermode='closest'
    )

    return fig


def create_speed_figure(track_df):
    """Speed over frames with the run average."""
    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=track_df['frame_index'],
        y=track_df['speed'],
        mode='lines+markers',
        name='Speed',
        line=dict(color='blue', width=2),
        marker=dict(size=6)
    ))

    moving = track_df['speed'].iloc[1:]
    if not moving.empty:
        avg_speed = moving.mean()
        fig.add_hline(
            y=avg_speed,
            line_dash="dash",
            line_color="red",
            annotation_text=f"Average: {avg_speed:.2f} tw/s"
        )

    fig.update_layout(
        xaxis_title="Frame",
        yaxis_title="Speed (tw/s)",
        hovermode='x unified'
    )

    return fig


def load_data(db_path="data/tracking.db"):
    """Load runs and their tracks from the database."""
    db = TrackingDatabase(db_path, verbose=False)

    runs = db.get_all_runs()
    tracks = {run['run_id']: pd.DataFrame(db.get_track(run['run_id'])) for run in runs}

    db.close()

    return pd.DataFrame(runs), tracks


def main():
    """Main dashboard application."""
    st.set_page_config(
        page_title="Point Tracker",
        layout="wide"
    )

    st.title("Point Tracker")
    st.markdown("---")

    runs_df, tracks = load_data()

    if runs_df.empty:
        st.info("No tracking runs found. Process a video first!")
        st.markdown("""
        To get started:
        1. Run: `python src/video_processor.py --video input.mp4 --color 255,0,0 --output data/processed`
        2. Refresh this dashboard
        """)
        return

    # Sidebar - run selector
    st.sidebar.header("Runs")
    run_options = [
        f"#{row['run_id']} - {row['source']} ({row['status']})"
        for _, row in runs_df.iterrows()
    ]
    selected = st.sidebar.selectbox("Select Run", run_options)
    run = runs_df.iloc[run_options.index(selected)]
    track_df = tracks.get(run['run_id'], pd.DataFrame())

    col1, col2, col3, col4 = st.columns(4)

    with col1:
        st.metric("Frames Tracked", int(run['points']))

    with col2:
        if pd.notna(run['avg_speed']):
            st.metric("Avg Speed", f"{run['avg_speed']:.2f} tw/s")
        else:
            st.metric("Avg Speed", "N/A")

    with col3:
        if pd.notna(run['max_speed']):
            st.metric("Max Speed", f"{run['max_speed']:.2f} tw/s")
        else:
            st.metric("Max Speed", "N/A")

    with col4:
        st.metric("Target Color", run['target_color'])

    if run['status'] == 'failed':
        st.error(f"Run failed at frame {run['failed_frame']}: {run['error']}")

    st.markdown("---")

    tab1, tab2, tab3, tab4 = st.tabs([
        "Path",
        "Speed",
        "Points",
        "All Runs"
    ])

    with tab1:
        st.header("Marker Path")
        if not track_df.empty:
            fig = create_track_figure(track_df, target_color=run['target_color'])
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("No track data for this run")

    with tab2:
        st.header("Speed Analysis")
        if not track_df.empty and track_df['speed'].notna().any():
            st.plotly_chart(create_speed_figure(track_df), use_container_width=True)

            st.subheader("Speed Distribution")
            fig = px.histogram(
                track_df.iloc[1:],
                x='speed',
                nbins=20,
                labels={'speed': 'Speed (tw/s)'}
            )
            fig.update_layout(showlegend=False)
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("No speed data available")

    with tab3:
        st.header("Track Points")
        if not track_df.empty:
            st.dataframe(
                track_df,
                column_config={
                    'frame_index': 'Frame',
                    'x': 'x',
                    'y': 'y',
                    'speed': st.column_config.NumberColumn(
                        'Speed (tw/s)',
                        format="%.2f"
                    )
                },
                hide_index=True,
                use_container_width=True
            )
            st.download_button(
                "Download CSV",
                track_df.to_csv(index=False),
                file_name=f"track_{run['run_id']}.csv",
                mime="text/csv"
            )
        else:
            st.info("No track points")

    with tab4:
        st.header("All Runs")
        summary = runs_df[[
            'run_id', 'source', 'status', 'points', 'avg_speed',
            'fps', 'scale_ratio', 'track_width', 'created_at'
        ]].copy()
        summary['avg_speed'] = summary['avg_speed'].round(2)
        st.dataframe(
            summary,
            column_config={
                'run_id': 'Run',
                'source': 'Source',
                'status': 'Status',
                'points': st.column_config.NumberColumn('Frames', format="%d"),
                'avg_speed': st.column_config.NumberColumn('Avg Speed', format="%.2f tw/s"),
                'fps': 'FPS',
                'scale_ratio': 'Scale (px)',
                'track_width': 'Track Width',
                'created_at': 'Created'
            },
            hide_index=True,
            use_container_width=True
        )

    st.markdown("---")
    st.caption("Point Tracker - color marker tracking")


if __name__ == "__main__":
    main()
